"""Section visibility observer.

Observes every element matching a selector at start time and emits a list
of events for the elements that came into view on each detector callback.
Elements leaving the viewport produce nothing.
"""

import logging
from typing import Any, Dict, List, Optional

from ..browser.ports import Clock, IntersectionEntry, VisibilityDetector, VisibilityDetectorFactory
from ..models.events import VisibilityEvent
from .base import BaseObserver

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_THRESHOLD = 0.25


class VisibilityObserver(BaseObserver):
    """Emits "became visible" events for tagged sections."""

    name = "visibility"

    def __init__(
        self,
        document,
        detector_factory: VisibilityDetectorFactory,
        clock: Clock,
        selector: str,
        options: Optional[Dict[str, Any]] = None,
    ):
        """Initialize visibility observer.

        Args:
            document: Page queried for target elements at start
            detector_factory: Creates the intersection detector for a callback and threshold
            clock: Timestamp source
            selector: CSS selector of tracked sections
            options: Recognised key: ``threshold`` (visible fraction, default 0.25)
        """
        super().__init__()
        self.document = document
        self.detector_factory = detector_factory
        self.clock = clock
        self.selector = selector
        self.options = dict(options or {})
        self._detector: Optional[VisibilityDetector] = None
        self.observed_count = 0

    @property
    def threshold(self) -> float:
        threshold = self.options.get('threshold')
        return DEFAULT_VISIBILITY_THRESHOLD if threshold is None else float(threshold)

    def start(self) -> None:
        if self._running:
            return
        self._detector = self.detector_factory(self._on_entries, self.threshold)
        elements = self.document.query_selector_all(self.selector)
        for element in elements:
            self._detector.observe(element)
        self.observed_count = len(elements)
        self._running = True
        logger.debug(f"Observing {len(elements)} elements matching {self.selector!r}")

    def stop(self) -> None:
        if self._detector is not None:
            self._detector.disconnect()
            self._detector = None
        self._running = False

    def element_identifier(self, element) -> str:
        return element.id or element.get_attribute('data-track-id') or f"anon_{self.clock.now_ms()}"

    def _on_entries(self, entries: List[IntersectionEntry]) -> None:
        events = [
            VisibilityEvent(id=self.element_identifier(entry.target), ts=self.clock.now_ms())
            for entry in entries
            if entry.is_intersecting
        ]
        if events:
            self._emit(events)
