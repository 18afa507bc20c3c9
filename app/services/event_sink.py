from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol

from app.models.events import ProgressEvent


class EventSink(Protocol):
    """Destination for the progress events of one run."""

    async def send(self, event: ProgressEvent) -> None: ...
    async def complete(self) -> None: ...
    async def complete_with_error(self, error: BaseException) -> None: ...


class SinkClosedError(RuntimeError):
    pass


_CLOSED = object()


class QueueEventSink:
    """In-process channel: the run task writes, the observer iterates.

    The queue is unbounded so a slow or absent reader never blocks a step.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self.error: BaseException | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: ProgressEvent) -> None:
        if self._closed:
            raise SinkClosedError(f"Cannot send '{event.event.value}' after the stream completed")
        self._queue.put_nowait(event)

    async def complete(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def complete_with_error(self, error: BaseException) -> None:
        self.error = error
        await self.complete()

    async def events(self) -> AsyncIterator[ProgressEvent]:
        """Yield events until the stream completes."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        return self.events()
