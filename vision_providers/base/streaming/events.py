"""Streaming event primitives.

A streamed response is delivered as ``StreamStart``, zero or more
``StreamChunk`` values in generation order, then exactly one terminal event:
``StreamComplete`` or ``StreamError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..errors import AdapterError


@dataclass(frozen=True)
class StreamStart:
    provider: str
    model: str


@dataclass(frozen=True)
class StreamChunk:
    """One incremental text delta.

    ``accumulated`` is the running total including ``text`` for consumers that
    render the whole answer on each update instead of appending deltas.
    """

    text: str
    accumulated: str


@dataclass(frozen=True)
class StreamComplete:
    full_text: str


@dataclass(frozen=True)
class StreamError:
    """Terminal failure; ``partial_text`` is kept for diagnostics only."""

    cause: AdapterError
    partial_text: str = ""


StreamEvent = Union[StreamStart, StreamChunk, StreamComplete, StreamError]
TERMINAL_EVENTS = (StreamComplete, StreamError)


def is_terminal(event: StreamEvent) -> bool:
    return isinstance(event, TERMINAL_EVENTS)


__all__ = [
    "StreamStart",
    "StreamChunk",
    "StreamComplete",
    "StreamError",
    "StreamEvent",
    "TERMINAL_EVENTS",
    "is_terminal",
]
