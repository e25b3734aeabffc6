"""Pure summary functions over ledger records."""

from math import floor
from typing import Dict, Iterable, Optional

from .models import InferenceRequestRecord, RecordStatus


def compute_ledger_metrics(records: Iterable[InferenceRequestRecord]) -> Dict:
    """Compute outcome, latency and error-category metrics from ledger records."""
    records_list = list(records)
    if not records_list:
        return empty_ledger_metrics()

    total_requests = len(records_list)
    success_count = sum(1 for record in records_list if record.status is RecordStatus.SUCCEEDED)
    failure_count = sum(1 for record in records_list if record.status is RecordStatus.FAILED)
    pending_count = total_requests - success_count - failure_count
    finished = success_count + failure_count

    latencies = [record.latency_ms for record in records_list if record.latency_ms is not None]
    avg_latency = sum(latencies) / len(latencies) if latencies else 0

    by_category: Dict[str, int] = {}
    for record in records_list:
        if record.error_category is not None:
            key = record.error_category.value
            by_category[key] = by_category.get(key, 0) + 1

    by_model: Dict[str, Dict] = {}
    for record in records_list:
        if record.model_id not in by_model:
            by_model[record.model_id] = {
                "count": 0,
                "errors": 0,
                "total_latency": 0.0,
                "latency_samples": 0,
            }

        model_data = by_model[record.model_id]
        model_data["count"] += 1
        if record.status is RecordStatus.FAILED:
            model_data["errors"] += 1
        if record.latency_ms is not None:
            model_data["total_latency"] += record.latency_ms
            model_data["latency_samples"] += 1

    for model_data in by_model.values():
        samples = model_data.pop("latency_samples")
        model_data["avg_latency_ms"] = model_data["total_latency"] / samples if samples > 0 else 0
        model_data["error_rate"] = model_data["errors"] / model_data["count"]

    return {
        "period": _period(records_list),
        "overview": {
            "total_requests": total_requests,
            "success_count": success_count,
            "failure_count": failure_count,
            "pending_count": pending_count,
            "error_rate": failure_count / finished if finished > 0 else 0.0,
            "avg_latency_ms": avg_latency,
            "latency_percentiles_ms": _compute_percentiles(latencies),
        },
        "by_category": by_category,
        "by_model": by_model,
    }


def empty_ledger_metrics() -> Dict:
    """Return empty ledger metrics structure."""
    return {
        "period": {"start": None, "end": None},
        "overview": {
            "total_requests": 0,
            "success_count": 0,
            "failure_count": 0,
            "pending_count": 0,
            "error_rate": 0.0,
            "avg_latency_ms": 0,
            "latency_percentiles_ms": _empty_percentiles(),
        },
        "by_category": {},
        "by_model": {},
    }


def _period(records_list: list[InferenceRequestRecord]) -> Dict[str, Optional[str]]:
    created = [record.created_at for record in records_list]
    return {"start": min(created).isoformat(), "end": max(created).isoformat()}


def _compute_percentiles(values: Iterable[float]) -> Dict[str, float]:
    points = [50, 90, 95, 99]
    sorted_values = sorted(float(value) for value in values)
    if not sorted_values:
        return _empty_percentiles()

    return {f"p{point}": _percentile(sorted_values, point / 100) for point in points}


def _percentile(sorted_values: list[float], quantile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return sorted_values[0]

    position = quantile * (len(sorted_values) - 1)
    lower_index = floor(position)
    upper_index = min(lower_index + 1, len(sorted_values) - 1)
    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    weight = position - lower_index
    return lower_value + (upper_value - lower_value) * weight


def _empty_percentiles() -> Dict[str, float]:
    return {"p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
