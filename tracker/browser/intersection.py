"""Geometry-based viewport intersection detection.

GeometryIntersectionObserver follows IntersectionObserver semantics for a
single threshold: after observe() it reports the initial state of every
element, and afterwards only elements whose intersecting state changed on
a scroll or resize.
"""

import logging
from typing import Dict, List, Optional

from .ports import DomEvent, IntersectionCallback, IntersectionEntry, VisibilityDetectorFactory

logger = logging.getLogger(__name__)

RECHECK_EVENTS = ("scroll", "resize")


class GeometryIntersectionObserver:
    """Intersection detector over a Document's scroll geometry."""

    def __init__(self, document, scheduler, callback: IntersectionCallback, threshold: float = 0.0):
        """Initialize detector.

        Args:
            document: Page providing viewport geometry and scroll/resize events
            scheduler: Scheduler used for the initial asynchronous check
            callback: Called with the list of changed entries
            threshold: Visible fraction at which an element counts as intersecting
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.document = document
        self.scheduler = scheduler
        self.threshold = threshold
        self._callback = callback
        self._elements: List = []
        self._states: Dict[int, bool] = {}
        self._listening = False
        self._initial_check = None

    def observe(self, element) -> None:
        if any(el is element for el in self._elements):
            return
        self._elements.append(element)
        if not self._listening:
            for event_type in RECHECK_EVENTS:
                self.document.add_listener(event_type, self._on_layout_event)
            self._listening = True
        if self._initial_check is None:
            self._initial_check = self.scheduler.call_later(0, self._run_initial_check)

    def unobserve(self, element) -> None:
        self._elements = [el for el in self._elements if el is not element]
        self._states.pop(id(element), None)

    def disconnect(self) -> None:
        if self._listening:
            for event_type in RECHECK_EVENTS:
                self.document.remove_listener(event_type, self._on_layout_event)
            self._listening = False
        if self._initial_check is not None:
            self._initial_check.cancel()
            self._initial_check = None
        self._elements.clear()
        self._states.clear()

    def intersection_ratio(self, element) -> float:
        rect = element.get_bounding_client_rect()
        viewport_height = self.document.viewport_height
        if rect.height <= 0:
            return 1.0 if 0 <= rect.top <= viewport_height else 0.0
        visible = min(rect.bottom, viewport_height) - max(rect.top, 0.0)
        return max(0.0, visible) / rect.height

    def _is_intersecting(self, ratio: float) -> bool:
        return ratio > 0 and ratio >= self.threshold

    def check(self) -> List[IntersectionEntry]:
        """Compare current geometry with the last reported state and notify changes."""
        entries = []
        for element in self._elements:
            ratio = self.intersection_ratio(element)
            intersecting = self._is_intersecting(ratio)
            previous: Optional[bool] = self._states.get(id(element))
            if previous is None or previous != intersecting:
                entries.append(IntersectionEntry(
                    target=element,
                    is_intersecting=intersecting,
                    intersection_ratio=ratio,
                    time=self.scheduler.perf_ms(),
                ))
            self._states[id(element)] = intersecting

        if entries:
            self._callback(entries)
        return entries

    def _run_initial_check(self) -> None:
        self._initial_check = None
        self.check()

    def _on_layout_event(self, event: DomEvent) -> None:
        self.check()


def geometry_detector_factory(document, scheduler) -> VisibilityDetectorFactory:
    """Bind a document and scheduler into a VisibilityDetectorFactory."""
    def factory(callback: IntersectionCallback, threshold: float) -> GeometryIntersectionObserver:
        return GeometryIntersectionObserver(document, scheduler, callback, threshold)
    return factory
