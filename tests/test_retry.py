import pytest

from infergate.exceptions import SubmissionStateError
from infergate.models import ClassifiedError, DispatchResult, ErrorCategory
from infergate.retry import AttemptOutcome, RetryController, SubmissionState, should_retry

S = SubmissionState


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def _success(output="ok"):
    return AttemptOutcome(result=DispatchResult(ok=True, latency_ms=10, output=output, status_code=200))


def _failure(category):
    return AttemptOutcome(
        result=DispatchResult(ok=False, latency_ms=10, status_code=503, body="{}"),
        error=ClassifiedError(category, "message"),
    )


def _scripted(*outcomes):
    calls = []

    async def attempt(number):
        calls.append(number)
        return outcomes[len(calls) - 1]

    return attempt, calls


@pytest.mark.asyncio
async def test_success_on_first_attempt():
    sleep = FakeSleep()
    controller = RetryController(sleep=sleep)
    attempt, calls = _scripted(_success())

    outcome = await controller.run(attempt)

    assert outcome.succeeded
    assert controller.state is S.SUCCEEDED
    assert controller.attempts == 1
    assert calls == [1]
    assert sleep.calls == []
    assert controller.transitions == [(S.IDLE, S.ATTEMPTING), (S.ATTEMPTING, S.SUCCEEDED)]


@pytest.mark.asyncio
async def test_model_loading_retries_after_backoff_then_succeeds():
    sleep = FakeSleep()
    controller = RetryController(sleep=sleep)
    attempt, calls = _scripted(_failure(ErrorCategory.MODEL_LOADING), _success("hi"))

    outcome = await controller.run(attempt)

    assert outcome.result.output == "hi"
    assert calls == [1, 2]
    assert sleep.calls == [3.0]
    assert controller.transitions == [
        (S.IDLE, S.ATTEMPTING),
        (S.ATTEMPTING, S.RETRYING),
        (S.RETRYING, S.ATTEMPTING),
        (S.ATTEMPTING, S.SUCCEEDED),
    ]


@pytest.mark.asyncio
async def test_sustained_model_loading_stops_at_three_attempts():
    sleep = FakeSleep()
    controller = RetryController(sleep=sleep)
    loading = _failure(ErrorCategory.MODEL_LOADING)
    attempt, calls = _scripted(loading, loading, loading, _success())

    outcome = await controller.run(attempt)

    assert outcome.error.category is ErrorCategory.MODEL_LOADING
    assert calls == [1, 2, 3]
    assert controller.attempts == 3
    assert sleep.calls == [3.0, 3.0]
    assert controller.state is S.FAILED
    assert controller.transitions[-1] == (S.ATTEMPTING, S.FAILED)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "category",
    [category for category in ErrorCategory if category is not ErrorCategory.MODEL_LOADING],
)
async def test_other_categories_are_final(category):
    sleep = FakeSleep()
    controller = RetryController(sleep=sleep)
    attempt, calls = _scripted(_failure(category), _success())

    outcome = await controller.run(attempt)

    assert outcome.error.category is category
    assert calls == [1]
    assert sleep.calls == []
    assert controller.state is S.FAILED


@pytest.mark.asyncio
async def test_controller_runs_only_once():
    controller = RetryController(sleep=FakeSleep())
    attempt, _ = _scripted(_success(), _success())
    await controller.run(attempt)

    with pytest.raises(SubmissionStateError):
        await controller.run(attempt)


@pytest.mark.asyncio
async def test_attempt_exception_fails_and_propagates():
    controller = RetryController(sleep=FakeSleep())

    async def attempt(number):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await controller.run(attempt)
    assert controller.state is S.FAILED


def test_should_retry_bounds():
    assert should_retry(ErrorCategory.MODEL_LOADING, 1, 3)
    assert should_retry(ErrorCategory.MODEL_LOADING, 2, 3)
    assert not should_retry(ErrorCategory.MODEL_LOADING, 3, 3)
    assert not should_retry(ErrorCategory.RATE_LIMIT, 1, 3)


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryController(max_attempts=0)
