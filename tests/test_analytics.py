from datetime import datetime, timedelta, timezone

from infergate.analytics import compute_ledger_metrics, empty_ledger_metrics
from infergate.models import ErrorCategory, GenerationParams, InferenceRequestRecord


def _record(record_id, model_id, created_at, latency_ms=None, error_category=None, completed=True):
    return InferenceRequestRecord(
        id=record_id,
        owner_id="user-1",
        model_id=model_id,
        input_text="prompt",
        params=GenerationParams(),
        created_at=created_at,
        completed_at=created_at + timedelta(seconds=1) if completed else None,
        output_text=None if error_category else "ok",
        error_message="failed" if error_category else None,
        error_category=error_category,
        latency_ms=latency_ms,
    )


def test_compute_ledger_metrics_basic():
    now = datetime.now(timezone.utc)
    records = [
        _record(1, "chatbot", now - timedelta(minutes=3), latency_ms=100),
        _record(2, "chatbot", now - timedelta(minutes=2), latency_ms=300, error_category=ErrorCategory.MODEL_LOADING),
        _record(3, "codellama", now - timedelta(minutes=1), latency_ms=200),
        _record(4, "codellama", now, completed=False),
    ]

    result = compute_ledger_metrics(records)

    overview = result["overview"]
    assert overview["total_requests"] == 4
    assert overview["success_count"] == 2
    assert overview["failure_count"] == 1
    assert overview["pending_count"] == 1
    assert overview["error_rate"] == 1 / 3
    assert overview["avg_latency_ms"] == 200
    assert overview["latency_percentiles_ms"]["p50"] == 200
    assert overview["latency_percentiles_ms"]["p90"] == 280
    assert overview["latency_percentiles_ms"]["p99"] == 298
    assert result["by_category"] == {"model_loading": 1}
    assert result["by_model"]["chatbot"]["count"] == 2
    assert result["by_model"]["chatbot"]["errors"] == 1
    assert result["by_model"]["chatbot"]["error_rate"] == 0.5
    assert result["by_model"]["codellama"]["avg_latency_ms"] == 200
    assert result["period"]["start"] == (now - timedelta(minutes=3)).isoformat()
    assert result["period"]["end"] == now.isoformat()


def test_compute_ledger_metrics_empty():
    assert compute_ledger_metrics([]) == empty_ledger_metrics()
    assert empty_ledger_metrics()["overview"]["latency_percentiles_ms"]["p50"] == 0.0


def test_pending_only_has_no_error_rate():
    now = datetime.now(timezone.utc)
    result = compute_ledger_metrics([_record(1, "chatbot", now, completed=False)])

    assert result["overview"]["error_rate"] == 0.0
    assert result["overview"]["avg_latency_ms"] == 0
    assert result["by_model"]["chatbot"]["avg_latency_ms"] == 0
