"""Event batcher with timed flushes and fire-and-forget delivery.

Events are appended to an in-memory buffer and handed to a delivery
callback as ``{"data": [...]}`` on a fixed interval or on demand. Flushing
detaches the buffer before delivery starts, so events pushed while a
delivery is in flight always land in the next batch.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from ..browser.ports import Handle, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL_MS = 10000

BatchDict = Dict[str, List[Dict[str, Any]]]
DeliveryCallback = Callable[[BatchDict], Union[None, Awaitable[Any]]]


class EventBatcher:
    """Buffers event records and delivers them in batches."""

    def __init__(
        self,
        deliver: DeliveryCallback,
        scheduler: Scheduler,
        flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS,
    ):
        """Initialize batcher.

        Args:
            deliver: Called with each non-empty batch; may return an awaitable,
                which is scheduled and never awaited by the flush timer
            scheduler: Scheduler providing the repeating flush timer
            flush_interval_ms: Milliseconds between timed flushes
        """
        if flush_interval_ms <= 0:
            raise ValueError("flush_interval_ms must be positive")
        self._deliver = deliver
        self.scheduler = scheduler
        self.flush_interval_ms = flush_interval_ms
        self._buffer: List[Dict[str, Any]] = []
        self._timers: List[Handle] = []
        self._in_flight: Set[asyncio.Future] = set()
        self._stats = {
            "events_pushed": 0,
            "batches_flushed": 0,
            "events_flushed": 0,
            "delivery_errors": 0,
        }

    def push(self, event: Dict[str, Any]) -> None:
        self._buffer.append(event)
        self._stats["events_pushed"] += 1

    def start(self) -> None:
        """Start the repeating flush timer. Each call adds another timer."""
        self._timers.append(self.scheduler.call_every(self.flush_interval_ms, self.flush))
        logger.debug(f"Batcher started with {self.flush_interval_ms}ms interval")

    def stop(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

    @property
    def running(self) -> bool:
        return bool(self._timers)

    def flush(self) -> Optional[BatchDict]:
        """Detach the buffered events and hand them to the delivery callback.

        Returns:
            The delivered batch, or None when nothing was buffered
        """
        if not self._buffer:
            return None

        batch, self._buffer = self._buffer, []
        batched_data = {"data": batch}
        self._stats["batches_flushed"] += 1
        self._stats["events_flushed"] += len(batch)

        logger.debug(f"Flushing batch of {len(batch)} events")
        self._dispatch(batched_data)
        return batched_data

    def _dispatch(self, batched_data: BatchDict) -> None:
        try:
            result = self._deliver(batched_data)
        except Exception as e:
            self._stats["delivery_errors"] += 1
            logger.error(f"Error delivering batch of {len(batched_data['data'])} events: {e}")
            return

        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            self._stats["delivery_errors"] += 1
            logger.error("Asynchronous delivery requires a running event loop; batch dropped")
            return

        task = asyncio.ensure_future(result, loop=loop)
        self._in_flight.add(task)
        task.add_done_callback(self._on_delivery_done)

    def _on_delivery_done(self, task: asyncio.Future) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            logger.debug("Batch delivery cancelled")
            return
        error = task.exception()
        if error is not None:
            self._stats["delivery_errors"] += 1
            logger.error(f"Batch delivery failed: {error}")

    async def drain(self) -> None:
        """Wait for deliveries that are still in flight."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def get_stats(self) -> Dict[str, int]:
        return {
            **self._stats,
            "buffered": len(self._buffer),
            "in_flight": len(self._in_flight),
        }

    def __repr__(self) -> str:
        return (
            f"EventBatcher(buffered={len(self._buffer)}, "
            f"batches={self._stats['batches_flushed']}, "
            f"interval_ms={self.flush_interval_ms})"
        )
