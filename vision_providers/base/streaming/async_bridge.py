"""Async adapters over the blocking streaming coordinator.

Stream reads block on the network; inside an event loop each ``__anext__``
pulls the next event in a worker thread via ``asyncio.to_thread``.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterator, Optional

from .coordinator import StreamingCoordinator
from .events import StreamEvent

_DONE = object()


class AsyncStreamIterator:
    """Async iterator of :class:`StreamEvent` values backed by a coordinator."""

    def __init__(self, coordinator: StreamingCoordinator) -> None:
        self._coordinator = coordinator
        self._iterator: Optional[Iterator[StreamEvent]] = None

    @property
    def coordinator(self) -> StreamingCoordinator:
        return self._coordinator

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._iterator is None:
            self._iterator = iter(self._coordinator)
        event = await asyncio.to_thread(next, self._iterator, _DONE)
        if event is _DONE:
            raise StopAsyncIteration
        return event  # type: ignore[return-value]

    async def aclose(self) -> None:
        await asyncio.to_thread(self._coordinator.close)


__all__ = ["AsyncStreamIterator"]
