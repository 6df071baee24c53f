from __future__ import annotations

import asyncio
import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(RuntimeError):
    pass


class EventChannel(Generic[T]):
    """
    Bounded FIFO between one producer and one consumer.

    send() waits for free space, so a slow consumer stalls the producer.
    After close(), send() raises ChannelClosed and recv() raises it once the
    remaining items are drained.
    """

    def __init__(self, capacity: int = 4):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def send(self, item: T) -> None:
        if self._closed:
            raise ChannelClosed("send on closed channel")
        await self._queue.put(item)

    async def recv(self) -> T:
        if self._closed and self._queue.empty():
            raise ChannelClosed("channel closed")
        item = await self._queue.get()
        if item is _CLOSED:
            raise ChannelClosed("channel closed")
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # wake a receiver parked on an empty queue; a full queue means
        # nobody is waiting and recv() sees the flag after draining
        if not self._queue.full():
            self._queue.put_nowait(_CLOSED)
        logger.debug("Event channel closed (%d pending)", self._queue.qsize())
