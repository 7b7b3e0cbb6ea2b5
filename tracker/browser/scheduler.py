"""Scheduler implementations for timers and animation frames.

AsyncioScheduler runs callbacks on the running asyncio event loop.
VirtualScheduler keeps its own clock that only moves when advance() is
called, which makes timing-sensitive observers deterministic in tests and
in scripted simulations.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_FRAME_RATE = 60.0


def _run_guarded(callback: Callable, *args) -> None:
    try:
        callback(*args)
    except Exception as e:
        logger.error(f"Error in scheduled callback {getattr(callback, '__name__', callback)!r}: {e}")


class _RepeatingHandle:
    """Re-arming loop timer for AsyncioScheduler.call_every."""

    def __init__(self, loop: asyncio.AbstractEventLoop, interval_s: float, callback: Callable[[], None]):
        self._loop = loop
        self._interval_s = interval_s
        self._callback = callback
        self._cancelled = False
        self._handle = loop.call_later(interval_s, self._run)

    def _run(self) -> None:
        if self._cancelled:
            return
        self._handle = self._loop.call_later(self._interval_s, self._run)
        _run_guarded(self._callback)

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()


class AsyncioScheduler:
    """Scheduler backed by the asyncio event loop and the system clocks."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None, frame_rate: float = DEFAULT_FRAME_RATE):
        """Initialize scheduler.

        Args:
            loop: Event loop to schedule on; defaults to the running loop
            frame_rate: Emulated animation frames per second
        """
        self._loop = loop
        self.frame_interval_ms = 1000.0 / frame_rate

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def perf_ms(self) -> float:
        return time.perf_counter() * 1000

    def call_later(self, delay_ms: float, callback: Callable[[], None]):
        return self.loop.call_later(max(0.0, delay_ms) / 1000, _run_guarded, callback)

    def call_every(self, interval_ms: float, callback: Callable[[], None]):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        return _RepeatingHandle(self.loop, interval_ms / 1000, callback)

    def request_frame(self, callback: Callable[[float], None]):
        return self.loop.call_later(
            self.frame_interval_ms / 1000,
            lambda: _run_guarded(callback, self.perf_ms()),
        )


class _VirtualTimer:
    def __init__(self, callback: Callable[[], None], interval_ms: Optional[float] = None):
        self.callback = callback
        self.interval_ms = interval_ms
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Deterministic scheduler with a manually advanced clock.

    ``now_ms`` starts at ``start_ms`` and ``perf_ms`` at zero; both move
    only inside :meth:`advance`, which runs every due timer in due order
    with the clock set to that timer's due time.
    """

    def __init__(self, start_ms: int = 1_700_000_000_000, frame_rate: float = DEFAULT_FRAME_RATE):
        self._start_ms = start_ms
        self._elapsed_ms = 0.0
        self._queue: List[Tuple[float, int, _VirtualTimer]] = []
        self._sequence = itertools.count()
        self.frame_interval_ms = 1000.0 / frame_rate

    def now_ms(self) -> int:
        return int(self._start_ms + self._elapsed_ms)

    def perf_ms(self) -> float:
        return self._elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        return self._elapsed_ms

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def _schedule(self, due_ms: float, timer: _VirtualTimer) -> _VirtualTimer:
        heapq.heappush(self._queue, (due_ms, next(self._sequence), timer))
        return timer

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _VirtualTimer:
        return self._schedule(self._elapsed_ms + max(0.0, delay_ms), _VirtualTimer(callback))

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> _VirtualTimer:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        return self._schedule(self._elapsed_ms + interval_ms, _VirtualTimer(callback, interval_ms))

    def request_frame(self, callback: Callable[[float], None]) -> _VirtualTimer:
        return self.call_later(self.frame_interval_ms, lambda: callback(self.perf_ms()))

    def advance(self, ms: float) -> None:
        """Move the clock forward by ms, running timers that fall due."""
        target = self._elapsed_ms + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._elapsed_ms = due
            _run_guarded(timer.callback)
            if timer.interval_ms is not None and not timer.cancelled:
                self._schedule(due + timer.interval_ms, timer)
        self._elapsed_ms = target

    def run_pending(self) -> None:
        """Run timers due at the current instant."""
        self.advance(0)
