"""Scroll depth observer.

Samples the scroll position once per animation frame and emits one event
for each depth threshold the first time it is reached, together with the
scroll velocity measured at that frame.
"""

import logging
import math
from typing import List, Optional, Sequence, Set, Union

from ..browser.ports import Handle, Scheduler, Viewport
from ..models.events import ScrollEvent
from ..models.meta import TrackerMeta
from .base import BaseObserver

logger = logging.getLogger(__name__)

SCROLL_THRESHOLDS = (0.25, 0.5, 0.75, 1.0)


def threshold_percent(threshold: float) -> Union[int, float]:
    """Express a threshold fraction as a percentage, whole numbers as int."""
    percent = round(threshold * 100, 6)
    return int(percent) if percent.is_integer() else percent


class ScrollObserver(BaseObserver):
    """Fires each scroll depth threshold at most once per page view."""

    name = "scroll"

    def __init__(
        self,
        viewport: Viewport,
        scheduler: Scheduler,
        meta: Optional[TrackerMeta] = None,
        thresholds: Sequence[float] = SCROLL_THRESHOLDS,
    ):
        """Initialize scroll observer.

        Args:
            viewport: Source of scroll position and document geometry
            scheduler: Provides animation frames and timestamps
            meta: Page metadata copied into events (page_id, session_id)
            thresholds: Ascending scroll fractions to report
        """
        super().__init__()
        self.viewport = viewport
        self.scheduler = scheduler
        self.meta = meta
        self.thresholds = tuple(sorted(thresholds))
        self._fired: Set[float] = set()
        self._last_scroll_top = 0.0
        self._last_timestamp = scheduler.perf_ms()
        self._frame: Optional[Handle] = None

    @property
    def fired_thresholds(self) -> List[float]:
        return sorted(self._fired)

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._frame = self.scheduler.request_frame(self._on_frame)
        logger.debug("Scroll observer started")

    def stop(self) -> None:
        self._running = False
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None

    def _on_frame(self, timestamp: float) -> None:
        self._frame = None
        try:
            self.sample(
                self.viewport.scroll_top,
                self.viewport.scroll_height - self.viewport.viewport_height,
                timestamp,
            )
        finally:
            if self._running:
                self._frame = self.scheduler.request_frame(self._on_frame)

    def sample(self, scroll_top: float, doc_height: float, timestamp: float) -> List[ScrollEvent]:
        """Process one scroll sample.

        Args:
            scroll_top: Current scroll offset in pixels
            doc_height: Scrollable distance (document height minus viewport)
            timestamp: Monotonic sample time in milliseconds

        Returns:
            Events for thresholds newly crossed by this sample, ascending
        """
        time_delta = (timestamp - self._last_timestamp) / 1000
        scroll_delta = abs(scroll_top - self._last_scroll_top)
        velocity = math.floor(scroll_delta / time_delta + 0.5) if time_delta > 0 else 0

        events = []
        # Content that fits the viewport has no scroll depth to report
        if doc_height > 0:
            scrolled_ratio = scroll_top / doc_height
            for threshold in self.thresholds:
                if scrolled_ratio >= threshold and threshold not in self._fired:
                    self._fired.add(threshold)
                    event = ScrollEvent(
                        scroll_percent=threshold_percent(threshold),
                        velocity=velocity,
                        page_id=self.meta.page_id if self.meta else None,
                        session_id=self.meta.session_id if self.meta else None,
                        ts=self.scheduler.now_ms(),
                    )
                    events.append(event)
                    logger.debug(f"Scroll threshold {event.scroll_percent}% reached at {velocity}px/s")
                    self._emit(event)

        self._last_scroll_top = scroll_top
        self._last_timestamp = timestamp
        return events

    def get_stats(self):
        return {
            **super().get_stats(),
            'fired_thresholds': self.fired_thresholds,
        }
