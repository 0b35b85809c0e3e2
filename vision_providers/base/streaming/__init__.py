"""Streaming package: events, coordinator state machine, async bridge."""

from .events import (
    StreamChunk,
    StreamComplete,
    StreamError,
    StreamEvent,
    StreamStart,
    TERMINAL_EVENTS,
    is_terminal,
)
from .coordinator import StreamState, StreamingCoordinator
from .async_bridge import AsyncStreamIterator

__all__ = [
    "StreamStart",
    "StreamChunk",
    "StreamComplete",
    "StreamError",
    "StreamEvent",
    "TERMINAL_EVENTS",
    "is_terminal",
    "StreamState",
    "StreamingCoordinator",
    "AsyncStreamIterator",
]
