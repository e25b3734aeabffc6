"""Pure transform from a normalized request into the upstream wire payload."""

from typing import Any, Dict

from .models import ModelDescriptor, NormalizedRequest

# Always reuse cached results and wait for a cold model instead of failing fast.
UPSTREAM_OPTIONS = {"use_cache": True, "wait_for_model": True}


def build_payload(request: NormalizedRequest, descriptor: ModelDescriptor) -> Dict[str, Any]:
    """Rename fields to the upstream vocabulary without touching their values."""
    params = request.params
    parameters: Dict[str, Any] = {
        "temperature": params.temperature,
        "max_new_tokens": params.max_tokens,
        "top_p": params.top_p,
        "frequency_penalty": params.frequency_penalty,
        "presence_penalty": params.presence_penalty,
    }
    if params.stop_sequences:
        parameters["stop"] = list(params.stop_sequences)

    return {
        "inputs": request.input_text,
        "parameters": parameters,
        "options": dict(UPSTREAM_OPTIONS),
    }


def upstream_endpoint(base_url: str, descriptor: ModelDescriptor) -> str:
    return f"{base_url.rstrip('/')}/{descriptor.upstream_path}"
