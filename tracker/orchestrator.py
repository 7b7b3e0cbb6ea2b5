"""Tracking orchestration for a single page view.

This module provides the TrackingOrchestrator class that wires every page
observer to one shared EventBatcher, enriches observer events with session
and page metadata, and owns the delivery callback.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from .batching.batcher import DeliveryCallback, EventBatcher
from .browser.intersection import geometry_detector_factory
from .browser.ports import Scheduler, VisibilityDetectorFactory
from .capture import (
    BaseObserver,
    ClickObserver,
    EngagementTimer,
    InteractionObserver,
    ScrollObserver,
    VisibilityObserver,
)
from .config.loader import TrackerConfig
from .delivery.http_delivery import DeliveryConfig, HttpBatchDelivery, LoggingDelivery
from .models.events import (
    ClickEvent,
    EngagementEvent,
    EventRecord,
    EventType,
    InteractionEvent,
    ScrollEvent,
)
from .models.meta import TrackerMeta
from .session.provider import SessionIdentityProvider
from .session.storage import JsonFileStorage, process_storage

logger = logging.getLogger(__name__)


class TrackingOrchestrator:
    """Runs all observers for one page view against one batcher."""

    def __init__(
        self,
        meta: Optional[Union[TrackerMeta, Mapping]],
        document,
        scheduler: Scheduler,
        config: Optional[TrackerConfig] = None,
        delivery: Optional[DeliveryCallback] = None,
        session_provider: Optional[SessionIdentityProvider] = None,
        detector_factory: Optional[VisibilityDetectorFactory] = None,
    ):
        """Initialize orchestrator.

        Args:
            meta: Host-supplied page metadata; tracking is skipped when None
            document: Page providing events, viewport geometry and element queries
            scheduler: Timers, animation frames and clocks
            config: Pipeline settings; defaults apply when omitted
            delivery: Batch delivery callback; built from config when omitted
            session_provider: Session id source; built from config when omitted
            detector_factory: Intersection detector factory for the visibility observer
        """
        if isinstance(meta, Mapping):
            meta = TrackerMeta.model_validate(dict(meta))
        self.meta: Optional[TrackerMeta] = meta
        self.document = document
        self.scheduler = scheduler
        self.config = config or TrackerConfig()
        self.delivery = delivery
        self.session_provider = session_provider or self._build_session_provider()
        self.detector_factory = detector_factory or geometry_detector_factory(document, scheduler)

        self.session_id: Optional[str] = None
        self.batcher: Optional[EventBatcher] = None
        self.observers: Dict[str, BaseObserver] = {}
        self._started = False
        self._stopped = False
        self._missing_meta_reported = False
        self._dropped = 0

    def _build_session_provider(self) -> SessionIdentityProvider:
        if self.config.session_storage_path is not None:
            storage = JsonFileStorage(self.config.session_storage_path)
        else:
            storage = process_storage()
        return SessionIdentityProvider(storage, key=self.config.session_storage_key)

    def _build_delivery(self) -> DeliveryCallback:
        if not self.config.endpoint_url:
            return LoggingDelivery()
        return HttpBatchDelivery(DeliveryConfig(
            endpoint_url=self.config.endpoint_url,
            api_key=self.meta.api_password,
            api_key_header=self.config.api_key_header,
            timeout_seconds=self.config.delivery_timeout_seconds,
        ))

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> bool:
        """Wire observers and start batching.

        Returns:
            False when no metadata was supplied and nothing is tracked, or
            when this page view was already stopped
        """
        if self._started:
            return True

        # Depth thresholds and engagement totals belong to one page view
        if self._stopped:
            logger.warning("Tracking already stopped for this page view, not restarting")
            return False

        if self.meta is None:
            if not self._missing_meta_reported:
                logger.warning("Tracker metadata not available, tracking disabled")
                self._missing_meta_reported = True
            return False

        self.session_id = self.session_provider.get_session_id()
        self.meta.session_id = self.session_id

        if self.delivery is None:
            self.delivery = self._build_delivery()

        self.batcher = EventBatcher(self.delivery, self.scheduler, self.config.flush_interval_ms)
        self.batcher.start()

        self._setup_observers()
        for observer in self.observers.values():
            observer.start()

        self._started = True
        logger.info(
            f"Tracking started for {self.meta.page_url} "
            f"(session {self.session_id}, observers: {', '.join(self.observers)})"
        )
        return True

    def _setup_observers(self) -> None:
        config = self.config

        if config.enable_scroll:
            scroll = ScrollObserver(self.document, self.scheduler, self.meta, config.scroll_thresholds)
            scroll.add_callback(self._on_scroll)
            self.observers['scroll'] = scroll

        if config.enable_click:
            click = ClickObserver(
                self.document, self.document, self.scheduler, self.meta,
                debounce_ms=config.click_debounce_ms,
            )
            click.add_callback(self._on_click)
            self.observers['click'] = click

        if config.enable_engagement:
            engagement = EngagementTimer(
                self.document, self.document, self.scheduler,
                interval_ms=config.engagement_interval_ms,
            )
            engagement.add_callback(self._on_engagement)
            self.observers['engagement'] = engagement

        if config.enable_interaction:
            interaction = InteractionObserver(self.document, self.scheduler)
            interaction.add_callback(self._on_interaction)
            self.observers['interaction'] = interaction

        if config.enable_visibility:
            visibility = VisibilityObserver(
                self.document,
                self.detector_factory,
                self.scheduler,
                config.visibility_selector,
                {'threshold': config.visibility_threshold},
            )
            visibility.add_callback(self._on_visible)
            self.observers['visibility'] = visibility

    # Enrichment

    def _record(self, event_type: EventType, ts: int, **fields: Any) -> Dict[str, Any]:
        context = self.meta.context_fields(self.config.forward_fields) or None
        return EventRecord(
            session_id=self.session_id,
            page_url=self.meta.page_url,
            event_type=event_type,
            ts=ts,
            context=context,
            **fields,
        ).to_payload()

    def _push(self, record: Dict[str, Any]) -> None:
        self.batcher.push(record)
        logger.debug(f"Buffered {record['event_type']} event")

    def _on_scroll(self, event: ScrollEvent) -> None:
        self._push(self._record(
            EventType.SCROLL,
            self.scheduler.now_ms(),
            meta={
                'page_id': event.page_id,
                'velocity': event.velocity,
                'scroll_percent': event.scroll_percent,
            },
        ))

    def _on_click(self, event: ClickEvent) -> None:
        self._push(self._record(
            EventType.CLICK,
            self.scheduler.now_ms(),
            meta={
                'link_text': event.link_text,
                'target_url': event.target_url,
                'position_in_view': event.position_in_view,
                'internal': event.internal,
                'page_id': event.page_id,
            },
        ))

    def _on_engagement(self, event: EngagementEvent) -> None:
        self._push(self._record(
            EventType.ENGAGEMENT,
            event.ts,
            active_time=event.active_time,
            total_time=event.total_time,
        ))

    def _on_interaction(self, event: InteractionEvent) -> None:
        fields = event.model_dump(mode="json", exclude={'ts'})
        self._push(self._record(EventType.INTERACTION, event.ts, **fields))

    def _on_visible(self, events: Any) -> None:
        """Accept a list of visibility events or a single event object."""
        if isinstance(events, list):
            items = events
        elif isinstance(events, (Mapping, BaseModel)):
            items = [events]
        else:
            self._dropped += 1
            logger.warning(f"Invalid visibility event data: {events!r}")
            return

        for item in items:
            data = self._as_dict(item)
            if data is None:
                self._dropped += 1
                logger.warning(f"Invalid visibility event data: {item!r}")
                continue
            ts = data.pop('ts', None) or self.scheduler.now_ms()
            for key in ('type', 'event_type', 'session_id', 'page_url'):
                data.pop(key, None)
            self._push(self._record(EventType.VISIBLE, ts, **data))

    @staticmethod
    def _as_dict(item: Any) -> Optional[Dict[str, Any]]:
        if isinstance(item, BaseModel):
            return item.model_dump(mode="json")
        if isinstance(item, Mapping):
            return dict(item)
        return None

    # Lifecycle

    def flush(self) -> Optional[Dict[str, List[Dict[str, Any]]]]:
        if self.batcher is None:
            return None
        return self.batcher.flush()

    def stop(self, flush: bool = True) -> None:
        """Stop observers and the flush timer, optionally flushing what is buffered."""
        if not self._started:
            return
        for observer in self.observers.values():
            observer.stop()
        self.batcher.stop()
        if flush:
            self.batcher.flush()
        self._started = False
        self._stopped = True
        logger.debug("Tracking stopped")

    async def aclose(self) -> None:
        """Stop, wait for in-flight deliveries and release the delivery client."""
        self.stop()
        if self.batcher is not None:
            await self.batcher.drain()
        aclose = getattr(self.delivery, 'aclose', None)
        if aclose is not None:
            await aclose()

    def get_stats(self) -> Dict[str, Any]:
        return {
            'started': self._started,
            'session_id': self.session_id,
            'dropped_events': self._dropped,
            'batcher': self.batcher.get_stats() if self.batcher else None,
            'observers': {name: obs.get_stats() for name, obs in self.observers.items()},
        }

    def __repr__(self) -> str:
        return (
            f"TrackingOrchestrator(started={self._started}, "
            f"observers={list(self.observers)}, session={self.session_id})"
        )
