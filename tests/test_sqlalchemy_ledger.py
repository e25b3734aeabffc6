import pytest

from infergate.exceptions import LedgerStateError, RecordNotFoundError
from infergate.models import ErrorCategory, GenerationParams, NormalizedRequest, RecordStatus


def _request(text="hello", model="chatbot"):
    return NormalizedRequest(
        model_id=model,
        input_text=text,
        params=GenerationParams(temperature=0.5, max_tokens=50, stop_sequences=("END",)),
    )


def test_record_creates_pending_entry(ledger):
    record_id = ledger.record(_request(), "user-1")

    record = ledger.get(record_id)
    assert record.status is RecordStatus.PENDING
    assert record.owner_id == "user-1"
    assert record.model_id == "chatbot"
    assert record.params == GenerationParams(temperature=0.5, max_tokens=50, stop_sequences=("END",))
    assert record.output_text is None
    assert record.error_message is None
    assert record.completed_at is None
    assert record.created_at.tzinfo is not None


def test_record_ids_are_unique_and_increasing(ledger):
    ids = [ledger.record(_request(str(i)), None) for i in range(5)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_record_then_complete_round_trip(ledger):
    record_id = ledger.record(_request(), "user-1")

    ledger.complete(record_id, "hi there", 120)

    record = ledger.get(record_id)
    assert record.status is RecordStatus.SUCCEEDED
    assert record.output_text == "hi there"
    assert record.latency_ms == 120
    assert record.completed_at is not None


def test_fail_records_category_and_message(ledger):
    record_id = ledger.record(_request(), "user-1")

    ledger.fail(record_id, "quota exhausted", ErrorCategory.RATE_LIMIT, 40)

    record = ledger.get(record_id)
    assert record.status is RecordStatus.FAILED
    assert record.error_category is ErrorCategory.RATE_LIMIT
    assert record.error_message == "quota exhausted"
    assert record.latency_ms == 40


def test_fail_without_latency(ledger):
    record_id = ledger.record(_request(), None)

    ledger.fail(record_id, "boom", ErrorCategory.UNKNOWN)

    assert ledger.get(record_id).latency_ms is None


def test_terminal_update_happens_once(ledger):
    record_id = ledger.record(_request(), "user-1")
    ledger.complete(record_id, "first", 10)

    with pytest.raises(LedgerStateError):
        ledger.complete(record_id, "second", 20)
    with pytest.raises(LedgerStateError):
        ledger.fail(record_id, "late", ErrorCategory.UNKNOWN)

    assert ledger.get(record_id).output_text == "first"


def test_unknown_record(ledger):
    with pytest.raises(RecordNotFoundError):
        ledger.get(999)
    with pytest.raises(RecordNotFoundError):
        ledger.complete(999, "x", 1)


def test_untouched_record_stays_pending(ledger):
    pending_id = ledger.record(_request(), "user-1")
    other_id = ledger.record(_request(), "user-1")
    ledger.complete(other_id, "done", 5)

    assert ledger.get(pending_id).status is RecordStatus.PENDING


def test_recent_returns_owner_records_newest_first(ledger):
    ids = []
    for i in range(7):
        record_id = ledger.record(_request(f"prompt {i}"), "user-u")
        ledger.complete(record_id, f"out {i}", 10)
        ids.append(record_id)
    ledger.record(_request("someone else"), "user-v")

    records = ledger.recent(owner_id="user-u", limit=5)

    assert [record.id for record in records] == list(reversed(ids))[:5]
    assert all(record.owner_id == "user-u" for record in records)


def test_recent_without_owner_is_unrestricted(ledger):
    first = ledger.record(_request(), "user-u")
    second = ledger.record(_request(), "user-v")
    third = ledger.record(_request(), None)

    records = ledger.recent(limit=10)

    assert [record.id for record in records] == [third, second, first]
