"""Engagement timer.

Accumulates active time (page visible and touched by input) against total
elapsed time and reports both every sampling interval while active.
Only the page becoming hidden deactivates the timer; losing window focus
or pausing input does not.
"""

import logging
from typing import Optional

from ..browser.ports import DomEvent, EventSource, Handle, Scheduler, Viewport
from ..models.events import EngagementEvent
from .base import BaseObserver

logger = logging.getLogger(__name__)

ENGAGEMENT_INTERVAL_MS = 5000
ACTIVITY_EVENTS = ("scroll", "mousemove", "keydown")


class EngagementTimer(BaseObserver):
    """Tracks active versus total time on page."""

    name = "engagement"

    def __init__(
        self,
        source: EventSource,
        viewport: Viewport,
        scheduler: Scheduler,
        interval_ms: float = ENGAGEMENT_INTERVAL_MS,
    ):
        super().__init__()
        self.source = source
        self.viewport = viewport
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.active = False
        self.active_time_ms = 0
        self.total_time_ms = 0
        self.last_active: Optional[int] = None
        self.start_time: Optional[int] = None
        self._timer: Optional[Handle] = None

    def start(self) -> None:
        if self._running:
            return
        self.start_time = self.scheduler.now_ms()
        self.source.add_listener("visibilitychange", self._on_visibility_change)
        for event_type in ACTIVITY_EVENTS:
            self.source.add_listener(event_type, self._on_activity)
        self._timer = self.scheduler.call_every(self.interval_ms, self.tick)
        self._running = True
        logger.debug(f"Engagement timer started with {self.interval_ms}ms interval")

    def stop(self) -> None:
        if not self._running:
            return
        self.source.remove_listener("visibilitychange", self._on_visibility_change)
        for event_type in ACTIVITY_EVENTS:
            self.source.remove_listener(event_type, self._on_activity)
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._running = False

    def set_active(self) -> None:
        if not self.active:
            self.last_active = self.scheduler.now_ms()
        self.active = True

    def set_inactive(self) -> None:
        # Time since the last sample still counts as engaged
        if self.active and self.last_active is not None:
            self.active_time_ms += self.scheduler.now_ms() - self.last_active
            self.last_active = None
        self.active = False

    def _on_visibility_change(self, event: DomEvent) -> None:
        if self.viewport.hidden:
            self.set_inactive()
        else:
            self.set_active()

    def _on_activity(self, event: DomEvent) -> None:
        self.set_active()

    def tick(self) -> Optional[EngagementEvent]:
        """Sample the accumulators; emits only while active."""
        if not (self.active and self.last_active is not None):
            return None

        now = self.scheduler.now_ms()
        self.active_time_ms += now - self.last_active
        self.last_active = now
        self.total_time_ms = now - self.start_time

        event = EngagementEvent(
            active_time=self.active_time_ms // 1000,
            total_time=self.total_time_ms // 1000,
            ts=now,
        )
        self._emit(event)
        return event

    def get_stats(self):
        return {
            **super().get_stats(),
            'active': self.active,
            'active_time_ms': self.active_time_ms,
            'total_time_ms': self.total_time_ms,
        }
