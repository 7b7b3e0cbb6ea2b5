"""Click observer for links, buttons and opted-in elements.

Clicks are delegated from the document body, resolved to the nearest
interactive ancestor and debounced on the trailing edge, so a burst of
clicks produces one event for the last element clicked.
"""

import logging
from typing import Optional

from ..browser.ports import DomEvent, EventSource, Scheduler, Viewport
from ..models.events import ClickEvent
from ..models.meta import TrackerMeta
from ..utils.debounce import Debouncer
from .base import BaseObserver

logger = logging.getLogger(__name__)

INTERACTIVE_SELECTOR = "[data-track], a, button"
DEBOUNCE_DELAY_MS = 250
MAX_LINK_TEXT_LENGTH = 100


def position_in_view(top: float, bottom: float, viewport_height: float) -> float:
    """Normalized vertical position of an element's box in the viewport.

    Returns top/viewport_height (2 decimals) when the box is fully visible,
    0 when it starts above the viewport and 1 otherwise.
    """
    if viewport_height <= 0:
        return 0.0
    if top >= 0 and bottom <= viewport_height:
        return round(top / viewport_height, 2)
    return 0.0 if top < 0 else 1.0


class ClickObserver(BaseObserver):
    """Emits debounced click events with link metadata."""

    name = "click"

    def __init__(
        self,
        source: EventSource,
        viewport: Viewport,
        scheduler: Scheduler,
        meta: Optional[TrackerMeta] = None,
        debounce_ms: float = DEBOUNCE_DELAY_MS,
        selector: str = INTERACTIVE_SELECTOR,
    ):
        """Initialize click observer.

        Args:
            source: Delegated click events
            viewport: Viewport height and page origin
            scheduler: Timer for the debounce window and event timestamps
            meta: Page metadata copied into events (page_id, session_id)
            debounce_ms: Quiet period before a burst is processed
            selector: Elements that count as interactive
        """
        super().__init__()
        self.source = source
        self.viewport = viewport
        self.scheduler = scheduler
        self.meta = meta
        self.selector = selector
        self._debounced = Debouncer(self._process, debounce_ms, scheduler)

    def start(self) -> None:
        if self._running:
            return
        self.source.add_listener("click", self._on_click)
        self._running = True
        logger.debug("Click observer listener setup complete")

    def stop(self) -> None:
        if self._running:
            self.source.remove_listener("click", self._on_click)
        self._running = False
        self._debounced.cancel()

    def _on_click(self, event: DomEvent) -> None:
        if event.target is None:
            return
        target = event.target.closest(self.selector)
        if target is None:
            return
        self._debounced(target)

    def _process(self, element) -> None:
        event = self.extract(element)
        logger.debug(f"Click on {element!r}: {event.target_url}")
        self._emit(event)

    def extract(self, element) -> ClickEvent:
        """Build a ClickEvent from the clicked element."""
        href = element.get_attribute('href') or None
        rect = element.get_bounding_client_rect()
        link_text = (element.inner_text or "").strip()[:MAX_LINK_TEXT_LENGTH]

        return ClickEvent(
            link_text=link_text or None,
            target_url=href,
            position_in_view=position_in_view(rect.top, rect.bottom, self.viewport.viewport_height),
            internal=bool(href) and href.startswith(self.viewport.origin),
            page_id=self.meta.page_id if self.meta else None,
            session_id=self.meta.session_id if self.meta else None,
            ts=self.scheduler.now_ms(),
        )
