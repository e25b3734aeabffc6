"""Application service orchestrating validation, dispatch, retry and the ledger."""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Sequence, Set

from .analytics import compute_ledger_metrics
from .catalog import resolve
from .classifier import classify_dispatch
from .config import Settings
from .exceptions import ValidationFailed
from .logger import logger
from .models import (
    ClassifiedError,
    ErrorCategory,
    InferenceRequestRecord,
    ModelDescriptor,
    NormalizedRequest,
)
from .payload import build_payload, upstream_endpoint
from .ports import Dispatcher, RequestLedger
from .retry import AttemptOutcome, RetryController, SubmissionState
from .validation import validate

MAX_PAGE_SIZE = 100
METRICS_WINDOW = 1000


@dataclass(frozen=True)
class SubmissionResult:
    """Caller-visible outcome of one submission."""

    record_id: int
    model_id: str
    state: SubmissionState
    attempts: int
    elapsed_seconds: float
    output: Optional[str] = None
    error: Optional[ClassifiedError] = None
    latency_ms: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.state is SubmissionState.SUCCEEDED

    @property
    def time_taken_seconds(self) -> Optional[float]:
        """Upstream latency of the final attempt."""
        if self.latency_ms is None:
            return None
        return self.latency_ms / 1000


class Submission:
    """
    One user-initiated submission.

    Owns its own RetryController, so concurrent submissions never share retry
    state. Exposes the attempt count and elapsed time while it runs.
    """

    def __init__(
        self,
        record_id: int,
        request: NormalizedRequest,
        descriptor: ModelDescriptor,
        endpoint: str,
        payload: dict,
        credential: Optional[str],
        dispatcher: Dispatcher,
        controller: RetryController,
    ):
        self.record_id = record_id
        self.request = request
        self.descriptor = descriptor
        self.endpoint = endpoint
        self.payload = payload
        self.credential = credential
        self.controller = controller
        self._dispatcher = dispatcher
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None

    @property
    def state(self) -> SubmissionState:
        return self.controller.state

    @property
    def attempts(self) -> int:
        return self.controller.attempts

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._finished_at if self._finished_at is not None else time.perf_counter()
        return end - self._started_at

    async def run(self) -> AttemptOutcome:
        self._started_at = time.perf_counter()
        try:
            return await self.controller.run(self._attempt)
        finally:
            self._finished_at = time.perf_counter()

    async def _attempt(self, attempt_number: int) -> AttemptOutcome:
        logger.debug(
            "[{}] attempt {}/{} -> {}",
            self.record_id,
            attempt_number,
            self.controller.max_attempts,
            self.endpoint,
        )
        result = await self._dispatcher.dispatch(self.payload, self.endpoint, self.credential)
        if result.ok:
            return AttemptOutcome(result=result)

        error = classify_dispatch(result)
        logger.warning(
            "[{}] upstream failure status={} category={} ({}ms)",
            self.record_id,
            result.status_code,
            error.category.value,
            result.latency_ms,
        )
        return AttemptOutcome(result=result, error=error)


class InferenceService:
    """
    Facade service that exposes gateway operations independent of web frameworks.

    Ledger writes made while submitting run in worker threads; the history
    and metrics reads are blocking calls.
    """

    def __init__(
        self,
        ledger: RequestLedger,
        dispatcher: Dispatcher,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.settings = settings or Settings()
        self._sleep = sleep
        self._background: Set["asyncio.Task[SubmissionResult]"] = set()

    def prepare(self, raw: Dict, owner_id: Optional[str]) -> Submission:
        """Validate ``raw`` and create its pending ledger entry."""
        validated = validate(raw)
        if isinstance(validated, list):
            raise ValidationFailed(validated)

        descriptor = resolve(validated.model_id, validated.custom_path)
        payload = build_payload(validated, descriptor)
        endpoint = upstream_endpoint(self.settings.upstream_base_url, descriptor)
        credential = validated.api_key or self.settings.huggingface_api_key or None

        record_id = self.ledger.record(validated, owner_id)
        controller = RetryController(
            max_attempts=self.settings.retry_max_attempts,
            backoff_seconds=self.settings.retry_backoff_seconds,
            sleep=self._sleep,
            label=str(record_id),
        )
        return Submission(
            record_id=record_id,
            request=validated,
            descriptor=descriptor,
            endpoint=endpoint,
            payload=payload,
            credential=credential,
            dispatcher=self.dispatcher,
            controller=controller,
        )

    async def submit(self, raw: Dict, owner_id: Optional[str] = None) -> SubmissionResult:
        """
        Run one submission end to end.

        The submission runs in its own task. If the caller is cancelled the
        task keeps going and still writes its outcome to the ledger.
        """
        task = asyncio.ensure_future(self._prepare_and_execute(raw, owner_id))
        self._background.add(task)
        task.add_done_callback(self._finished)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.info("caller for owner {} went away, finishing in background", owner_id)
            raise

    async def _prepare_and_execute(self, raw: Dict, owner_id: Optional[str]) -> SubmissionResult:
        submission = await asyncio.to_thread(self.prepare, raw, owner_id)
        logger.info(
            "[{}] submission accepted: model={} owner={}",
            submission.record_id,
            submission.request.model_id,
            owner_id,
        )
        return await self.execute(submission)

    async def execute(self, submission: Submission) -> SubmissionResult:
        """Drive ``submission`` to a terminal state and record the outcome."""
        try:
            outcome = await submission.run()
        except Exception as exc:
            logger.exception("[{}] unexpected failure during dispatch", submission.record_id)
            await asyncio.to_thread(
                self.ledger.fail,
                submission.record_id,
                f"Internal error: {exc}",
                ErrorCategory.UNKNOWN,
            )
            raise

        result = outcome.result
        if outcome.succeeded:
            await asyncio.to_thread(
                self.ledger.complete, submission.record_id, result.output or "", result.latency_ms
            )
            logger.info(
                "[{}] succeeded after {} attempt(s) in {:.2f}s",
                submission.record_id,
                submission.attempts,
                submission.elapsed_seconds,
            )
        else:
            await asyncio.to_thread(
                self.ledger.fail,
                submission.record_id,
                outcome.error.message,
                outcome.error.category,
                result.latency_ms,
            )
            logger.info(
                "[{}] failed with {} after {} attempt(s)",
                submission.record_id,
                outcome.error.category.value,
                submission.attempts,
            )

        return SubmissionResult(
            record_id=submission.record_id,
            model_id=submission.request.model_id,
            state=submission.state,
            attempts=submission.attempts,
            elapsed_seconds=submission.elapsed_seconds,
            output=result.output if outcome.succeeded else None,
            error=outcome.error,
            latency_ms=result.latency_ms,
        )

    def get_history(
        self,
        owner_id: str,
        limit: Optional[int] = None,
    ) -> Sequence[InferenceRequestRecord]:
        return self.ledger.recent(owner_id=owner_id, limit=self._page_size(limit))

    def get_all_history(self, limit: Optional[int] = None) -> Sequence[InferenceRequestRecord]:
        return self.ledger.recent(owner_id=None, limit=self._page_size(limit))

    def get_metrics(self, window: int = METRICS_WINDOW) -> Dict:
        return compute_ledger_metrics(self.ledger.recent(owner_id=None, limit=window))

    def _page_size(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.history_page_size
        return max(1, min(limit, MAX_PAGE_SIZE))

    def _finished(self, task: "asyncio.Task[SubmissionResult]") -> None:
        self._background.discard(task)
        # The caller may be gone; mark the exception retrieved.
        if not task.cancelled():
            task.exception()

