"""
Outbound call to the upstream inference API.

The dispatcher performs exactly one POST per call and measures its wall-clock
latency. Failures are returned raw (status and body); classification happens
later. Successful bodies are normalized to one output string by trying the
shape matchers in ``SHAPE_MATCHERS`` in order.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Optional

import httpx

from .logger import logger
from .models import DispatchResult

ShapeMatcher = Callable[[Any], Optional[str]]

NETWORK_FAILURE_PREFIX = "Failed to fetch from upstream"


def match_generated_text_list(body: Any) -> Optional[str]:
    """``[{"generated_text": "..."}, ...]`` as returned by text-generation models."""
    if isinstance(body, list) and body and isinstance(body[0], dict):
        text = body[0].get("generated_text")
        if isinstance(text, str):
            return text
    return None


def match_generated_text_object(body: Any) -> Optional[str]:
    """``{"generated_text": "..."}`` as returned by some seq2seq models."""
    if isinstance(body, dict):
        text = body.get("generated_text")
        if isinstance(text, str):
            return text
    return None


def match_any(body: Any) -> str:
    return json.dumps(body, indent=2, ensure_ascii=False)


SHAPE_MATCHERS: tuple[tuple[str, ShapeMatcher], ...] = (
    ("generated_text_list", match_generated_text_list),
    ("generated_text_object", match_generated_text_object),
)


def normalize_output(body: Any) -> str:
    """
    Return the output of the first shape matcher that accepts ``body``.

    Bodies no matcher accepts are serialized as pretty-printed JSON.
    """
    for name, matcher in SHAPE_MATCHERS:
        output = matcher(body)
        if output is not None:
            logger.debug("response shape matched: {}", name)
            return output
    return match_any(body)


class UpstreamDispatcher:
    """Sends payloads upstream with a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def dispatch(
        self,
        payload: dict,
        endpoint: str,
        credential: Optional[str] = None,
    ) -> DispatchResult:
        headers = {"Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        start = time.perf_counter()
        try:
            response = await self.client.post(endpoint, json=payload, headers=headers)
        except httpx.RequestError as exc:
            latency_ms = _elapsed_ms(start)
            detail = str(exc) or type(exc).__name__
            logger.warning("upstream request to {} failed after {}ms: {}", endpoint, latency_ms, detail)
            return DispatchResult(
                ok=False,
                latency_ms=latency_ms,
                body=f"{NETWORK_FAILURE_PREFIX}: {detail}",
                transport_error=True,
            )
        latency_ms = _elapsed_ms(start)

        if not response.is_success:
            logger.debug("upstream answered {} in {}ms", response.status_code, latency_ms)
            return DispatchResult(
                ok=False,
                latency_ms=latency_ms,
                status_code=response.status_code,
                body=response.text,
            )

        try:
            body = response.json()
        except ValueError:
            output = response.text
        else:
            output = normalize_output(body)

        return DispatchResult(
            ok=True,
            latency_ms=latency_ms,
            status_code=response.status_code,
            output=output,
        )


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))
