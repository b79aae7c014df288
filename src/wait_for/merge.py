"""Fan-in of many asynchronous event sources into one stream."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger("wait-for")

T = TypeVar("T")


class _SourceFailed:
    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


_CLOSED = object()


class EventMerger(Generic[T]):
    """Merge async iterables in arrival order.

    Items from one source keep their relative order; nothing is said about
    ordering between sources. The merged stream ends once every source has
    ended. Use as an async context manager so forwarding tasks are started and
    always reaped.
    """

    def __init__(self, sources: Sequence[AsyncIterable[T]]) -> None:
        self._sources = list(sources)
        self._queue: "asyncio.Queue[object]" = asyncio.Queue()
        self._tasks: List[asyncio.Task[None]] = []
        self._open = len(self._sources)

    async def _forward(self, source: AsyncIterable[T]) -> None:
        try:
            async for item in source:
                self._queue.put_nowait(item)
        except Exception as exc:
            self._queue.put_nowait(_SourceFailed(exc))
        finally:
            self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "EventMerger[T]":
        if self._tasks:
            raise RuntimeError("EventMerger is already running")
        self._tasks = [
            asyncio.create_task(self._forward(source), name=f"wait-for-source-{index}")
            for index, source in enumerate(self._sources)
        ]
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        if exc_type is not None:
            for task in self._tasks:
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        dropped = self._queue.qsize()
        if dropped:
            logger.debug("Discarded undelivered items on close", extra={"count": dropped})

    async def get(self) -> Optional[T]:
        """Return the next item, or ``None`` once every source has closed.

        Sources must not yield ``None`` themselves.
        """

        while self._open:
            item = await self._queue.get()
            if item is _CLOSED:
                self._open -= 1
                continue
            if isinstance(item, _SourceFailed):
                raise item.exc
            return item  # type: ignore[return-value]
        return None

    def __aiter__(self) -> "EventMerger[T]":
        return self

    async def __anext__(self) -> T:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item


async def merge(*sources: AsyncIterable[T]) -> AsyncIterator[T]:
    """Yield every item from every source as it arrives."""

    async with EventMerger(sources) as merged:
        async for item in merged:
            yield item


__all__ = ["EventMerger", "merge"]
