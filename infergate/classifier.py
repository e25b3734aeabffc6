"""
Maps raw upstream failure bodies to a closed set of error categories.

``classify`` is total: every input yields exactly one category. Structured
bodies (``{"error": "..."}``) are matched on their error text; anything else
is matched as raw text, where network-failure phrases are also recognized.
``classify_dispatch`` reports transport failures as network errors directly.
"""

import json
from typing import Optional, Sequence, Tuple

from .models import ClassifiedError, DispatchResult, ErrorCategory

PhraseRule = Tuple[ErrorCategory, Sequence[str]]

# Order matters: the first rule with a matching phrase wins.
PHRASE_TABLE: Tuple[PhraseRule, ...] = (
    (
        ErrorCategory.RATE_LIMIT,
        (
            "exceeded your monthly included credits",
            "rate limit",
            "too many requests",
            "quota",
            "credits",
        ),
    ),
    (ErrorCategory.MODEL_LOADING, ("currently loading",)),
    (ErrorCategory.MODEL_NOT_FOUND, ("not found", "does not exist")),
    (
        ErrorCategory.AUTHENTICATION,
        (
            "unauthorized",
            "invalid token",
            "invalid credentials",
            "invalid api key",
            "authorization header",
        ),
    ),
    (
        ErrorCategory.INVALID_INPUT,
        ("invalid input", "input validation", "validation error", "bad request"),
    ),
    (
        ErrorCategory.SERVER_ERROR,
        ("internal server error", "internal error", "server error", "service unavailable"),
    ),
)

NETWORK_RULE: PhraseRule = (
    ErrorCategory.NETWORK_ERROR,
    ("failed to fetch", "fetch failed", "network error", "cross-origin", "cors"),
)

CATEGORY_MESSAGES = {
    ErrorCategory.RATE_LIMIT: (
        "The shared Hugging Face quota is exhausted. "
        "Supply your own Hugging Face API key to keep generating."
    ),
    ErrorCategory.AUTHENTICATION: (
        "The Hugging Face API rejected the credentials. Check that your API key is valid."
    ),
    ErrorCategory.MODEL_LOADING: (
        "The model is still loading on Hugging Face. Please try again in a few moments."
    ),
    ErrorCategory.MODEL_NOT_FOUND: (
        "The requested model was not found on Hugging Face. Check the model path."
    ),
    ErrorCategory.INVALID_INPUT: (
        "The model rejected the input. Check the prompt and generation parameters."
    ),
    ErrorCategory.SERVER_ERROR: (
        "Hugging Face reported an internal error. Please try again later."
    ),
    ErrorCategory.NETWORK_ERROR: (
        "Could not reach the Hugging Face API. Check the network connection and try again."
    ),
}


def classify(failure_body: Optional[str]) -> ClassifiedError:
    text = failure_body or ""

    error_text = _structured_error(text)
    if error_text is not None:
        category = _match(error_text, PHRASE_TABLE)
        if category is not None:
            return ClassifiedError(category, CATEGORY_MESSAGES[category])
        return ClassifiedError(ErrorCategory.UNKNOWN, text)

    category = _match(text, PHRASE_TABLE + (NETWORK_RULE,))
    if category is not None:
        return ClassifiedError(category, CATEGORY_MESSAGES[category])
    return ClassifiedError(ErrorCategory.UNKNOWN, text)


def classify_dispatch(result: DispatchResult) -> ClassifiedError:
    """Classify a failed dispatch; transport failures never reach the phrase table."""
    if result.transport_error:
        return ClassifiedError(ErrorCategory.NETWORK_ERROR, CATEGORY_MESSAGES[ErrorCategory.NETWORK_ERROR])
    return classify(result.body)


def is_retryable(category: ErrorCategory) -> bool:
    return category is ErrorCategory.MODEL_LOADING


def _structured_error(text: str) -> Optional[str]:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), str):
        return parsed["error"]
    return None


def _match(text: str, rules: Sequence[PhraseRule]) -> Optional[ErrorCategory]:
    lowered = text.lower()
    for category, phrases in rules:
        if any(phrase in lowered for phrase in phrases):
            return category
    return None
