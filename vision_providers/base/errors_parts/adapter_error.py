"""
Structured adapter error exception type.

Wraps backend-specific exceptions with a normalized :class:`ErrorKind` so the
gateway, the fallback chain and callers can reason about failures uniformly.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .error_kind import ErrorKind


@dataclass(eq=False)
class AdapterError(Exception):
    """Represents a failed adapter call with a normalized kind.

    Attributes:
        kind: Normalized :class:`ErrorKind` classification for the failure.
        detail: Human-readable description suitable for logging and display.
        provider: Provider key where the error originated (e.g. ``"ollama"``).
        model: Optional model name associated with the failure.
        available_models: Alternatives reported by the backend when the
            requested model is missing. Empty when unknown.
        raw: Optional original exception for diagnostics.
    """

    kind: ErrorKind
    detail: str
    provider: str
    model: Optional[str] = None
    available_models: Tuple[str, ...] = ()
    raw: Optional[BaseException] = None

    def __post_init__(self) -> None:
        self.available_models = tuple(self.available_models or ())

    def __str__(self) -> str:  # pragma: no cover - trivial
        """Return a compact string combining provider, model, kind, and detail."""
        return f"{self.provider}:{self.model or '-'} {self.kind.value}: {self.detail}"

    @property
    def recoverable(self) -> bool:
        """True for kinds that may be answered by an alternate request shape."""
        return self.kind in (ErrorKind.MALFORMED, ErrorKind.NETWORK)


__all__ = ["AdapterError"]
