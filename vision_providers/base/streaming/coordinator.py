"""StreamingCoordinator: uniform event sequence over any backend stream.

Adapters hand the coordinator a plain iterator of text deltas (already opened,
so connection and status failures surface before a coordinator exists). The
coordinator owns the state machine::

    IDLE -> STREAMING -> COMPLETED
                      -> FAILED

and turns the deltas into ``StreamStart``/``StreamChunk``/``StreamComplete``/
``StreamError`` events. Transitions are one-way; any attempt to emit after a
terminal state raises :class:`StreamStateError`.

Cancellation is modelled as :meth:`StreamingCoordinator.close`: the underlying
response is closed and no further events are produced. There is no in-flight
abort signal.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional

from ..errors import AdapterError, StreamStateError, wrap_exception
from ..logging import LogContext, get_logger, normalized_log_event
from .events import StreamChunk, StreamComplete, StreamError, StreamEvent, StreamStart


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamingCoordinator:
    """Single-use iterable of :class:`StreamEvent` values.

    Parameters:
        source: Iterable of text deltas from the backend.
        provider: Provider id for events and error wrapping.
        model: Model id for events and error wrapping.
        on_close: Callback releasing the underlying response (idempotent use).
        logger: Optional logger; defaults to ``providers.stream``.
        ctx: Optional log context shared with the adapter call.
    """

    def __init__(
        self,
        source: Iterable[str],
        *,
        provider: str,
        model: str,
        on_close: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
        ctx: Optional[LogContext] = None,
    ) -> None:
        self._source = source
        self._provider = provider
        self._model = model
        self._on_close = on_close
        self._logger = logger or get_logger("providers.stream")
        self._ctx = ctx or LogContext(provider=provider, model=model)
        self._state = StreamState.IDLE
        self._buffer: List[str] = []
        self._consumed = False
        self._closed = False
        self._terminal: Optional[StreamEvent] = None

    @classmethod
    def from_text(cls, text: str, *, provider: str, model: str, **kwargs) -> "StreamingCoordinator":
        """Wrap a finished result so it reads as ``Start`` then ``Complete(text)``."""
        coordinator = cls((), provider=provider, model=model, **kwargs)
        coordinator._buffer.append(text)
        return coordinator

    # State -----------------------------------------------------------------
    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state in (StreamState.COMPLETED, StreamState.FAILED)

    @property
    def terminal_event(self) -> Optional[StreamEvent]:
        return self._terminal

    @property
    def text(self) -> str:
        """Text accumulated so far."""
        return "".join(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def _require(self, *allowed: StreamState) -> None:
        if self._state not in allowed:
            raise StreamStateError(f"illegal stream transition from {self._state.value}")

    # Transitions -----------------------------------------------------------
    def start(self) -> StreamStart:
        self._require(StreamState.IDLE)
        self._state = StreamState.STREAMING
        normalized_log_event(self._logger, "stream.start", self._ctx, phase="start", emitted=False)
        return StreamStart(provider=self._provider, model=self._model)

    def push(self, delta: str) -> StreamChunk:
        self._require(StreamState.STREAMING)
        self._buffer.append(delta)
        return StreamChunk(text=delta, accumulated=self.text)

    def complete(self) -> StreamComplete:
        self._require(StreamState.STREAMING)
        self._state = StreamState.COMPLETED
        event = StreamComplete(full_text=self.text)
        self._terminal = event
        return event

    def fail(self, cause: BaseException) -> StreamError:
        self._require(StreamState.STREAMING)
        self._state = StreamState.FAILED
        error = cause if isinstance(cause, AdapterError) else wrap_exception(cause, self._provider, self._model)
        event = StreamError(cause=error, partial_text=self.text)
        self._terminal = event
        normalized_log_event(
            self._logger,
            "stream.error",
            self._ctx,
            phase="mid_stream",
            error_code=error.kind.value,
            emitted=bool(self._buffer),
            error=error.detail,
            partial_chars=len(event.partial_text),
            level=logging.WARNING,
        )
        return event

    # Consumption -----------------------------------------------------------
    def __iter__(self) -> Iterator[StreamEvent]:
        if self._consumed:
            raise StreamStateError("stream already consumed")
        self._consumed = True
        return self._run()

    def _run(self) -> Iterator[StreamEvent]:
        t0 = time.perf_counter()
        emitted = 0
        try:
            yield self.start()
            iterator = iter(self._source)
            while not self._closed:
                try:
                    delta = next(iterator)
                except StopIteration:
                    break
                except Exception as exc:  # surfaced as StreamError
                    yield self.fail(exc)
                    return
                if not delta:
                    continue
                emitted += 1
                yield self.push(delta)
            if self._closed:
                return
            event = self.complete()
            normalized_log_event(
                self._logger,
                "stream.end",
                self._ctx,
                phase="finalize",
                emitted=emitted,
                total_duration_ms=(time.perf_counter() - t0) * 1000.0,
                chars=len(event.full_text),
            )
            yield event
        finally:
            self._release()

    def pump(self, callback: Callable[[StreamEvent], None]) -> StreamEvent:
        """Push every event to ``callback``; return the terminal event."""
        for event in self:
            callback(event)
        if self._terminal is None:
            raise StreamStateError("stream closed before a terminal event")
        return self._terminal

    def result(self) -> str:
        """Drain the stream and return the full text, raising on ``StreamError``."""
        terminal = self.pump(lambda _event: None)
        if isinstance(terminal, StreamError):
            raise terminal.cause
        return terminal.full_text

    def add_close_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` after the current close callback when the stream is released."""
        previous = self._on_close
        if previous is None:
            self._on_close = callback
            return

        def _both() -> None:
            try:
                previous()
            finally:
                callback()

        self._on_close = _both

    def close(self) -> None:
        """Close the underlying response and discard further events."""
        self._closed = True
        self._release()

    def _release(self) -> None:
        callback, self._on_close = self._on_close, None
        if callback is not None:
            callback()
        closer = getattr(self._source, "close", None)
        if callable(closer):
            closer()

    def __enter__(self) -> "StreamingCoordinator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["StreamState", "StreamingCoordinator"]
