"""Event batching with size and time triggers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any

from page_telemetry.domain.contracts.event_batcher import EventBatcherProtocol
from page_telemetry.domain.models.error_details import SinkError
from page_telemetry.domain.models.queued_event import EventCategory, QueuedEvent

if TYPE_CHECKING:
    from page_telemetry.domain.ports import DataSink

logger = logging.getLogger(__name__)


def partition_batch(batch: list[QueuedEvent]) -> dict[EventCategory, list[dict[str, Any]]]:
    """Group payloads by category, keeping enqueue order within each category."""
    groups: dict[EventCategory, list[dict[str, Any]]] = {}
    for event in batch:
        groups.setdefault(event.category, []).append(event.payload)
    return groups


class EventBatcher(EventBatcherProtocol):
    """Buffers events in memory and writes them to the sink in grouped inserts.

    A flush happens when the queue reaches max_queue_size, or flush_interval
    seconds after the most recent enqueue (trailing debounce), whichever comes
    first. Must be used from within a running asyncio event loop.
    """

    def __init__(
        self,
        sink: DataSink,
        flush_interval_seconds: float = 5.0,
        max_queue_size: int = 10,
        enabled: bool = True,
    ) -> None:
        """Initialize the batcher.

        Args:
            sink: Sink that receives the grouped inserts.
            flush_interval_seconds: Quiet period after the last enqueue before a flush.
            max_queue_size: Queue length that triggers an immediate flush.
            enabled: When False, events are dropped and no timers are scheduled.
        """
        self._sink = sink
        self._flush_interval = flush_interval_seconds
        self._max_queue_size = max_queue_size
        self._enabled = enabled
        self._queue: list[QueuedEvent] = []
        self._flush_handle: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def has_pending_flush(self) -> bool:
        return self._flush_handle is not None

    def enqueue(self, category: EventCategory, payload: dict[str, Any]) -> None:
        """Queue an event, flushing immediately once the queue is full."""
        if not self._enabled:
            logger.debug(f"Analytics disabled, dropping {category.name.lower()} event")
            return

        self._queue.append(QueuedEvent(category=category, payload=dict(payload)))

        if len(self._queue) >= self._max_queue_size:
            # The swap happens here, before control returns to the caller
            self._cancel_flush_timer()
            batch = self._take_batch()
            logger.debug(f"Queue reached {len(batch)} events, flushing immediately")
            self._spawn(self._send_batch(batch))
        else:
            self._schedule_flush()

    async def flush(self) -> None:
        """Swap out the queue and send its events, one insert per category."""
        if not self._queue or not self._enabled:
            return
        self._cancel_flush_timer()
        batch = self._take_batch()
        await self._send_batch(batch)

    def teardown(self) -> None:
        """Hand the remaining events to fire-and-forget sends."""
        self._cancel_flush_timer()
        if not self._enabled or not self._queue:
            return
        batch = self._take_batch()
        for category, payloads in partition_batch(batch).items():
            self._sink.dispatch(category.collection, payloads)
        logger.info(f"Dispatched {len(batch)} queued event(s) at teardown")

    async def aclose(self) -> None:
        """Wait for sends already in flight, then flush what is still queued.

        Batches reach the sink in the order they were swapped out of the queue.
        """
        await self._wait_in_flight()
        await self.flush()
        await self._wait_in_flight()

    async def _wait_in_flight(self) -> None:
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _take_batch(self) -> list[QueuedEvent]:
        batch, self._queue = self._queue, []
        return batch

    def _schedule_flush(self) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_flush_timer()
        self._flush_handle = loop.call_later(self._flush_interval, self._on_flush_timer)

    def _cancel_flush_timer(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None

    def _on_flush_timer(self) -> None:
        self._flush_handle = None
        self._spawn(self.flush())

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._on_send_done)

    def _on_send_done(self, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Unexpected error while flushing events: {task.exception()!r}")

    async def _send_batch(self, batch: list[QueuedEvent]) -> None:
        for category, payloads in partition_batch(batch).items():
            collection = category.collection
            try:
                await self._sink.insert(collection, payloads)
            except SinkError as e:
                logger.error(f"Error inserting {len(payloads)} event(s) into {collection}: {e}")
            else:
                logger.debug(f"Flushed {len(payloads)} event(s) to {collection}")
