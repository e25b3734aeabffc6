import json

import pytest

from infergate.classifier import classify, classify_dispatch, is_retryable
from infergate.models import DispatchResult, ErrorCategory


@pytest.mark.parametrize(
    "error_text, category",
    [
        ("You have exceeded your monthly included credits for Inference Providers.", ErrorCategory.RATE_LIMIT),
        ("Rate limit reached. Please log in or use your apiToken", ErrorCategory.RATE_LIMIT),
        ("Model xyz is currently loading", ErrorCategory.MODEL_LOADING),
        ("Model foo/bar does not exist", ErrorCategory.MODEL_NOT_FOUND),
        ("Not Found", ErrorCategory.MODEL_NOT_FOUND),
        ("Authorization header is correct, but the token seems invalid", ErrorCategory.AUTHENTICATION),
        ("Invalid credentials in Authorization header", ErrorCategory.AUTHENTICATION),
        ("Input validation error: `inputs` must have less than 4096 tokens", ErrorCategory.INVALID_INPUT),
        ("Internal Server Error", ErrorCategory.SERVER_ERROR),
    ],
)
def test_structured_error_field_is_matched(error_text, category):
    result = classify(json.dumps({"error": error_text}))

    assert result.category is category


def test_rate_limit_message_suggests_personal_key():
    body = '{"error": "You have exceeded your monthly included credits for Inference Providers."}'

    result = classify(body)

    assert result.category is ErrorCategory.RATE_LIMIT
    assert "your own Hugging Face API key" in result.message


def test_raw_text_falls_back_to_substring_matching():
    result = classify("<html>503 Service Unavailable</html>")

    assert result.category is ErrorCategory.SERVER_ERROR


@pytest.mark.parametrize(
    "body",
    [
        "Failed to fetch from upstream: [Errno 111] Connection refused",
        "TypeError: fetch failed",
        "Blocked by CORS policy",
    ],
)
def test_network_phrases_only_in_raw_text(body):
    assert classify(body).category is ErrorCategory.NETWORK_ERROR


def test_network_phrases_are_not_matched_inside_structured_errors():
    body = json.dumps({"error": "fetch failed"})

    result = classify(body)

    assert result.category is ErrorCategory.UNKNOWN
    assert result.message == body


def test_unmatched_text_passes_through_verbatim():
    result = classify("something odd happened")

    assert result.category is ErrorCategory.UNKNOWN
    assert result.message == "something odd happened"


def test_classify_is_total_for_empty_and_non_mapping_bodies():
    assert classify("").category is ErrorCategory.UNKNOWN
    assert classify(None).category is ErrorCategory.UNKNOWN
    assert classify("[1, 2, 3]").category is ErrorCategory.UNKNOWN
    assert classify('{"error": 42}').category is ErrorCategory.UNKNOWN


def test_classify_is_deterministic():
    body = '{"error": "Model xyz is currently loading", "estimated_time": 20.0}'

    assert {classify(body) for _ in range(5)} == {classify(body)}


def test_only_model_loading_is_retryable():
    retryable = [category for category in ErrorCategory if is_retryable(category)]

    assert retryable == [ErrorCategory.MODEL_LOADING]


def test_transport_failure_is_network_error_whatever_the_detail():
    result = DispatchResult(
        ok=False,
        latency_ms=3,
        body="Failed to fetch from upstream: [Errno -2] Name or service not found",
        transport_error=True,
    )

    assert classify(result.body).category is ErrorCategory.MODEL_NOT_FOUND
    assert classify_dispatch(result).category is ErrorCategory.NETWORK_ERROR


def test_classify_dispatch_uses_body_for_upstream_answers():
    result = DispatchResult(ok=False, latency_ms=3, status_code=503, body='{"error": "Model is currently loading"}')

    assert classify_dispatch(result).category is ErrorCategory.MODEL_LOADING
