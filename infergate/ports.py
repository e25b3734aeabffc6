"""Port definitions the gateway core depends on."""

from typing import Optional, Protocol, Sequence

from .models import DispatchResult, ErrorCategory, InferenceRequestRecord, NormalizedRequest


class RequestLedger(Protocol):
    """
    Durable record of each submission's lifecycle.

    Methods are blocking and may be called from worker threads.
    """

    def record(self, request: NormalizedRequest, owner_id: Optional[str]) -> int:
        """Create a pending entry and return its id."""

    def complete(self, record_id: int, output: str, latency_ms: int) -> None:
        """Mark a pending entry as succeeded."""

    def fail(
        self,
        record_id: int,
        message: str,
        category: ErrorCategory,
        latency_ms: Optional[int] = None,
    ) -> None:
        """Mark a pending entry as failed."""

    def get(self, record_id: int) -> InferenceRequestRecord:
        """Return one entry."""

    def recent(
        self,
        owner_id: Optional[str] = None,
        limit: int = 10,
    ) -> Sequence[InferenceRequestRecord]:
        """Return entries newest first, optionally restricted to one owner."""


class Dispatcher(Protocol):
    """Performs one outbound inference call."""

    async def dispatch(
        self,
        payload: dict,
        endpoint: str,
        credential: Optional[str] = None,
    ) -> DispatchResult:
        """Send ``payload`` to ``endpoint`` and return the raw result."""
