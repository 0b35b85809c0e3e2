"""Resilience helpers (bounded fallback chains) for backend adapters."""

from .fallback import DEFAULT_RECOVERABLE, FallbackAttempt, FallbackChain

__all__ = ["DEFAULT_RECOVERABLE", "FallbackAttempt", "FallbackChain"]
