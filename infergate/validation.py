"""Structural and numeric-bound checks for inbound inference requests."""

import math
import re
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .catalog import CATALOG, CUSTOM_MODEL_ID, DEFAULT_MODEL_ID
from .models import GenerationParams, NormalizedRequest, ValidationError

# (field, accepted keys, lower bound, upper bound, integral)
PARAM_BOUNDS = (
    ("temperature", ("temperature",), 0.0, 2.0, False),
    ("max_tokens", ("maxTokens", "max_tokens"), 1, 4096, True),
    ("top_p", ("topP", "top_p"), 0.0, 1.0, False),
    ("frequency_penalty", ("frequencyPenalty", "frequency_penalty"), 0.0, 2.0, False),
    ("presence_penalty", ("presencePenalty", "presence_penalty"), 0.0, 2.0, False),
)

STOP_SEQUENCE_KEYS = ("stopSequences", "stop_sequences")

# Hub repo ids: an optional owner and a name, each starting with a letter or digit.
MODEL_PATH_PATTERN = re.compile(r"(?:[A-Za-z0-9][A-Za-z0-9_.-]*/)?[A-Za-z0-9][A-Za-z0-9_.-]*")


def parse_stop_sequences(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-delimited string into trimmed, non-empty tokens."""
    if not raw:
        return ()
    return tuple(token.strip() for token in raw.split(",") if token.strip())


def validate(raw: Mapping[str, Any]) -> Union[NormalizedRequest, List[ValidationError]]:
    """
    Validate a raw request body.

    Returns a NormalizedRequest, or every violation found. Validation never
    stops at the first failure.
    """
    errors: List[ValidationError] = []

    model_id = _text(raw.get("model"))
    if not model_id:
        errors.append(ValidationError("model", "model is required"))

    input_text = raw.get("input")
    if not isinstance(input_text, str) or not input_text.strip():
        errors.append(ValidationError("input", "input must be a non-empty string"))

    custom_path = _text(raw.get("customModel")).strip("/")
    if model_id == CUSTOM_MODEL_ID:
        if not custom_path:
            errors.append(ValidationError("customModel", "a model path is required for custom models"))
        elif not MODEL_PATH_PATTERN.fullmatch(custom_path):
            errors.append(ValidationError("customModel", "must be a model path like owner/name"))

    language = raw.get("language", "")
    if not isinstance(language, str):
        errors.append(ValidationError("language", "language must be a string"))
        language = ""

    api_key = raw.get("apiKey")
    if api_key is not None and not isinstance(api_key, str):
        errors.append(ValidationError("apiKey", "apiKey must be a string"))
        api_key = None

    raw_params = raw.get("params")
    if raw_params is None:
        raw_params = {}
    if not isinstance(raw_params, Mapping):
        errors.append(ValidationError("params", "params must be an object"))
        raw_params = {}

    defaults = CATALOG.get(model_id, CATALOG[DEFAULT_MODEL_ID]).default_params
    values, param_errors = _validate_params(raw_params, defaults)
    errors.extend(param_errors)

    if errors:
        return errors

    return NormalizedRequest(
        model_id=model_id,
        input_text=input_text,
        params=GenerationParams(**values),
        language=language,
        api_key=api_key or None,
        custom_path=custom_path or None,
    )


def _validate_params(
    raw_params: Mapping[str, Any],
    defaults: GenerationParams,
) -> Tuple[Dict[str, Any], List[ValidationError]]:
    values: Dict[str, Any] = {}
    errors: List[ValidationError] = []

    for name, keys, lower, upper, integral in PARAM_BOUNDS:
        key, value = _lookup(raw_params, keys)
        if key is None:
            values[name] = getattr(defaults, name)
            continue

        field_name = f"params.{key}"
        if isinstance(value, bool) or not isinstance(value, Real):
            errors.append(ValidationError(field_name, "must be a number"))
            continue
        # ints of any size are exact; only other reals go through float
        if not isinstance(value, int) and not math.isfinite(value):
            errors.append(ValidationError(field_name, "must be a number"))
            continue
        if integral and not isinstance(value, int) and not float(value).is_integer():
            errors.append(ValidationError(field_name, "must be a whole number"))
            continue
        if not lower <= value <= upper:
            errors.append(ValidationError(field_name, f"must be between {lower} and {upper}"))
            continue
        values[name] = int(value) if integral else float(value)

    key, stop = _lookup(raw_params, STOP_SEQUENCE_KEYS)
    if key is None or stop is None:
        values["stop_sequences"] = defaults.stop_sequences
    elif isinstance(stop, str):
        values["stop_sequences"] = parse_stop_sequences(stop)
    else:
        errors.append(ValidationError(f"params.{key}", "must be a comma-separated string"))

    return values, errors


def _lookup(raw_params: Mapping[str, Any], keys: Tuple[str, ...]) -> Tuple[Optional[str], Any]:
    for key in keys:
        if key in raw_params:
            return key, raw_params[key]
    return None, None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
