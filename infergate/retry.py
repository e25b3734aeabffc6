"""
Bounded automatic retry for one submission.

State machine::

    IDLE -> ATTEMPTING -> SUCCEEDED
                       -> RETRYING -> (backoff) -> ATTEMPTING
                       -> FAILED

Only MODEL_LOADING failures are retried, and only while fewer than
``max_attempts`` attempts have been made. Every submission owns its own
controller; a controller runs once.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from .classifier import is_retryable
from .exceptions import SubmissionStateError
from .logger import logger
from .models import ClassifiedError, DispatchResult, ErrorCategory

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 3.0


class SubmissionState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = (SubmissionState.SUCCEEDED, SubmissionState.FAILED)


@dataclass(frozen=True)
class AttemptOutcome:
    """A dispatch result together with its classification, if it failed."""

    result: DispatchResult
    error: Optional[ClassifiedError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


Attempt = Callable[[int], Awaitable[AttemptOutcome]]


def should_retry(category: ErrorCategory, attempts: int, max_attempts: int) -> bool:
    return is_retryable(category) and attempts < max_attempts


class RetryController:
    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        label: str = "-",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.label = label
        self._sleep = sleep
        self.state = SubmissionState.IDLE
        self.attempts = 0
        self.transitions: List[Tuple[SubmissionState, SubmissionState]] = []

    async def run(self, attempt: Attempt) -> AttemptOutcome:
        """Drive ``attempt`` until it succeeds or a final failure is reached."""
        if self.state is not SubmissionState.IDLE:
            raise SubmissionStateError(f"controller already used (state={self.state.value})")

        self.attempts = 1
        self._transition(SubmissionState.ATTEMPTING)
        while True:
            try:
                outcome = await attempt(self.attempts)
            except BaseException:
                self._transition(SubmissionState.FAILED)
                raise

            if outcome.succeeded:
                self._transition(SubmissionState.SUCCEEDED)
                return outcome

            category = outcome.error.category
            if not should_retry(category, self.attempts, self.max_attempts):
                self._transition(SubmissionState.FAILED)
                return outcome

            self._transition(SubmissionState.RETRYING)
            logger.info(
                "[{}] attempt {}/{} model loading, retrying in {}s",
                self.label,
                self.attempts,
                self.max_attempts,
                self.backoff_seconds,
            )
            await self._sleep(self.backoff_seconds)
            self.attempts += 1
            self._transition(SubmissionState.ATTEMPTING)

    def _transition(self, new_state: SubmissionState) -> None:
        self.transitions.append((self.state, new_state))
        self.state = new_state
