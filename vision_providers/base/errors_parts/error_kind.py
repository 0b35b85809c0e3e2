"""
Normalized adapter failure kinds (taxonomy).

Defines the closed ``ErrorKind`` enumeration surfaced by every backend
adapter. Values are lowercase snake_case and are a stable public contract for
logging and for callers rendering user-facing messages.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Enumerated failure categories for adapter calls."""

    UNAUTHORIZED = "unauthorized"
    MODEL_UNAVAILABLE = "model_unavailable"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    NETWORK = "network"
    MALFORMED = "malformed"


__all__ = ["ErrorKind"]
