"""
Error classification helpers mapping exceptions to normalized ErrorKind values.

Implements HTTP status extraction, status-to-kind mapping, and message-based
heuristics as a fallback so SDK exceptions (openai, anthropic, google) and raw
``httpx`` failures land in the same closed taxonomy.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

import httpx

from .adapter_error import AdapterError
from .error_kind import ErrorKind


def _extract_status(exc: BaseException) -> Optional[int]:
    """Attempt to extract an HTTP status code from a backend exception.

    Supported attribute shapes (checked in order):
    - ``exc.status_code``
    - ``exc.status``
    - ``exc.code`` (google api_core exceptions)
    - ``exc.response.status_code``
    Returns ``None`` if no valid status can be found.
    """
    for attr in ("status_code", "status", "code"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and not isinstance(val, bool) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


_HTTP_STATUS_MAP: Dict[int, ErrorKind] = {
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.UNAUTHORIZED,
    408: ErrorKind.NETWORK,
    413: ErrorKind.PAYLOAD_TOO_LARGE,
    429: ErrorKind.NETWORK,
}

_MODEL_MISSING_PATTERNS = (
    "model not found",
    "not found, try pulling",
    "does not exist",
    "is not found",
    "no such model",
    "unknown model",
)


def _mentions_missing_model(msg: str) -> bool:
    if "model" not in msg:
        return False
    return any(p in msg for p in _MODEL_MISSING_PATTERNS) or "not found" in msg


def _mentions_size_limit(msg: str) -> bool:
    if "too large" in msg:
        return True
    return "exceeds" in msg and any(w in msg for w in ("size", "maximum", "mb"))


def classify_status(status: int, message: str = "") -> ErrorKind:
    """Map an HTTP status plus response text to an :class:`ErrorKind`.

    A 404 only means a missing model when the body says so; a bare 404 from a
    local server means the endpoint itself is not supported.
    """
    msg = (message or "").lower()
    if status == 400 and ("api key" in msg or "api_key" in msg):
        return ErrorKind.UNAUTHORIZED
    if status == 404:
        return ErrorKind.MODEL_UNAVAILABLE if _mentions_missing_model(msg) else ErrorKind.MALFORMED
    if status in _HTTP_STATUS_MAP:
        return _HTTP_STATUS_MAP[status]
    if status >= 500:
        return ErrorKind.NETWORK
    if status == 400 and _mentions_size_limit(msg):
        return ErrorKind.PAYLOAD_TOO_LARGE
    if _mentions_missing_model(msg):
        return ErrorKind.MODEL_UNAVAILABLE
    return ErrorKind.MALFORMED


def _heuristic_from_message(msg: str) -> Optional[ErrorKind]:  # pragma: no cover - simple mapping
    """Substring heuristic mapping for exceptions without an HTTP status."""
    PATTERN_GROUPS = (
        (ErrorKind.UNAUTHORIZED, ("api key",)),
        (ErrorKind.UNAUTHORIZED, ("api_key",)),
        (ErrorKind.UNAUTHORIZED, ("unauthorized",)),
        (ErrorKind.UNAUTHORIZED, ("forbidden",)),
        (ErrorKind.UNAUTHORIZED, ("permission denied",)),
        (ErrorKind.PAYLOAD_TOO_LARGE, ("too large",)),
        (ErrorKind.PAYLOAD_TOO_LARGE, ("payload size",)),
        (ErrorKind.NETWORK, ("timed out",)),
        (ErrorKind.NETWORK, ("timeout",)),
        (ErrorKind.NETWORK, ("connection",)),
        (ErrorKind.NETWORK, ("econnrefused",)),
        (ErrorKind.NETWORK, ("unavailable",)),
    )
    for kind, patterns in PATTERN_GROUPS:
        if any(p in msg for p in patterns):
            return kind
    if _mentions_missing_model(msg):
        return ErrorKind.MODEL_UNAVAILABLE
    return None


def classify_exception(exc: BaseException) -> ErrorKind:
    """Classify an exception into a normalized :class:`ErrorKind`.

    Precedence:
        1. AdapterError passthrough.
        2. Transport failures and timeouts (sync/async).
        3. HTTP status mapping.
        4. Substring heuristics.
        5. ``MALFORMED`` fallback.
    """
    if isinstance(exc, AdapterError):
        return exc.kind
    if isinstance(exc, (httpx.TransportError, TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return ErrorKind.NETWORK
    text = str(exc)
    status = _extract_status(exc)
    if status is not None:
        return classify_status(status, text)
    kind = _heuristic_from_message(text.lower())
    return kind if kind is not None else ErrorKind.MALFORMED


def wrap_exception(exc: BaseException, provider: str, model: Optional[str] = None) -> AdapterError:
    """Return ``exc`` as an :class:`AdapterError`, classifying when needed."""
    if isinstance(exc, AdapterError):
        return exc
    return AdapterError(
        kind=classify_exception(exc),
        detail=str(exc) or type(exc).__name__,
        provider=provider,
        model=model,
        raw=exc,
    )


__all__ = [
    "classify_exception",
    "classify_status",
    "wrap_exception",
    "_extract_status",
    "_HTTP_STATUS_MAP",
]
