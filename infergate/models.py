"""Core domain models shared by the gateway components."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ErrorCategory(str, Enum):
    """Closed set of upstream failure categories."""

    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    MODEL_LOADING = "model_loading"
    MODEL_NOT_FOUND = "model_not_found"
    INVALID_INPUT = "invalid_input"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class RecordStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters, already within their bounds."""

    temperature: float = 0.7
    max_tokens: int = 1024
    top_p: float = 0.9
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    stop_sequences: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "stop_sequences": list(self.stop_sequences),
        }


@dataclass(frozen=True)
class ModelDescriptor:
    """A catalog entry for one logical model."""

    id: str
    upstream_path: str
    is_tool: bool = False
    default_params: GenerationParams = field(default_factory=GenerationParams)
    label: str = ""
    category: str = ""
    description: str = ""
    sample_prompt: str = ""


@dataclass(frozen=True)
class NormalizedRequest:
    """A validated inference request."""

    model_id: str
    input_text: str
    params: GenerationParams
    language: str = ""
    api_key: Optional[str] = None
    custom_path: Optional[str] = None


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one outbound call, before any classification."""

    ok: bool
    latency_ms: int
    output: Optional[str] = None
    status_code: Optional[int] = None
    body: Optional[str] = None
    transport_error: bool = False


@dataclass(frozen=True)
class ClassifiedError:
    category: ErrorCategory
    message: str


@dataclass(frozen=True)
class InferenceRequestRecord:
    """A single ledger entry for one submission."""

    id: int
    owner_id: Optional[str]
    model_id: str
    input_text: str
    params: GenerationParams
    created_at: datetime
    completed_at: Optional[datetime] = None
    output_text: Optional[str] = None
    error_message: Optional[str] = None
    error_category: Optional[ErrorCategory] = None
    latency_ms: Optional[int] = None

    @property
    def status(self) -> RecordStatus:
        if self.completed_at is None:
            return RecordStatus.PENDING
        if self.error_category is not None:
            return RecordStatus.FAILED
        return RecordStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "model": self.model_id,
            "input": self.input_text,
            "params": self.params.to_dict(),
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "output": self.output_text,
            "error": self.error_message,
            "errorCategory": self.error_category.value if self.error_category else None,
            "latencyMs": self.latency_ms,
        }
