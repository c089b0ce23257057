"""
Typed event channels.

Each event category gets its own EventChannel. Publishers never call
handlers directly: events are queued per subscriber and an EventDispatcher
task feeds them to the handler, so a slow or failing handler cannot stall
the publisher.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from loguru import logger


E = TypeVar("E")


class EventChannel(Generic[E]):
    """
    Fan-out channel delivering events of one type to all subscribers.

    Usage:
        progress: EventChannel[SyncProgressEvent] = EventChannel("sync_progress")
        queue = progress.subscribe()
        progress.publish(event)
        received = await queue.get()
    """

    def __init__(self, name: str, maxsize: int = 1000) -> None:
        """
        Initialize channel.

        Args:
            name: Channel name for logging
            maxsize: Per-subscriber queue bound; oldest events are dropped
                when a subscriber falls behind
        """
        self.name = name
        self._maxsize = maxsize
        self._subscribers: list[asyncio.Queue[E]] = []

    def subscribe(self) -> asyncio.Queue[E]:
        """Register a new subscriber queue."""
        queue: asyncio.Queue[E] = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[E]) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: E) -> None:
        """Deliver event to every subscriber without blocking."""
        for queue in self._subscribers:
            if queue.full():
                dropped = queue.get_nowait()
                queue.task_done()
                logger.warning(f"[Events] {self.name}: subscriber lagging, dropped {dropped!r}")
            queue.put_nowait(event)


class EventDispatcher:
    """
    Runs one consumer task per (channel, handler) pair.

    Handler errors are logged and never stop the consumer.
    """

    def __init__(self) -> None:
        self._consumers: list[tuple[EventChannel, asyncio.Queue, asyncio.Task]] = []

    def attach(
        self,
        channel: EventChannel[E],
        handler: Callable[[E], Awaitable[None]],
    ) -> None:
        """
        Subscribe handler to channel.

        Must be called from a running event loop.
        """
        queue = channel.subscribe()
        task = asyncio.create_task(
            self._consume(channel.name, queue, handler),
            name=f"events:{channel.name}",
        )
        self._consumers.append((channel, queue, task))

    async def _consume(
        self,
        name: str,
        queue: asyncio.Queue[E],
        handler: Callable[[E], Awaitable[None]],
    ) -> None:
        while True:
            event = await queue.get()
            try:
                await handler(event)
            except Exception as e:
                logger.exception(f"[Events] {name}: handler failed on {event!r}: {e}")
            finally:
                queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        for _, queue, _ in list(self._consumers):
            await queue.join()

    async def close(self) -> None:
        """Cancel consumer tasks and unsubscribe. Idempotent."""
        consumers, self._consumers = self._consumers, []
        for channel, queue, task in consumers:
            task.cancel()
            channel.unsubscribe(queue)
        for _, _, task in consumers:
            with contextlib.suppress(asyncio.CancelledError):
                await task
