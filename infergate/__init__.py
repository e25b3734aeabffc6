"""InferGate - a gateway in front of a hosted model-inference API."""

from .catalog import list_models, resolve
from .classifier import classify
from .dispatcher import UpstreamDispatcher
from .models import ErrorCategory, GenerationParams, InferenceRequestRecord
from .payload import build_payload
from .retry import RetryController, SubmissionState
from .service import InferenceService, SubmissionResult
from .validation import validate

__all__ = [
    "InferenceService",
    "SubmissionResult",
    "UpstreamDispatcher",
    "RetryController",
    "SubmissionState",
    "ErrorCategory",
    "GenerationParams",
    "InferenceRequestRecord",
    "build_payload",
    "classify",
    "list_models",
    "resolve",
    "validate",
]

__version__ = "0.1.0"
