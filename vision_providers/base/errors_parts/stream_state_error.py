"""Exception raised on illegal streaming state transitions."""
from __future__ import annotations


class StreamStateError(RuntimeError):
    """A stream event was pushed after the coordinator reached a terminal state."""


__all__ = ["StreamStateError"]
