"""Page environment capabilities and in-memory implementations.

Main Components:
- Ports: protocols the observers depend on (Scheduler, EventSource, Viewport, VisibilityDetector)
- Document/Element: in-memory page model with selector matching
- Schedulers: asyncio-backed and virtual-clock scheduling
- GeometryIntersectionObserver: viewport intersection from element geometry
"""

from .ports import (
    Handle,
    Clock,
    Scheduler,
    DomEvent,
    EventSource,
    Viewport,
    IntersectionEntry,
    VisibilityDetector,
    VisibilityDetectorFactory,
)
from .selectors import SelectorSyntaxError, matches_selector, parse_selector
from .dom import Document, Element, Rect
from .scheduler import AsyncioScheduler, VirtualScheduler
from .intersection import GeometryIntersectionObserver, geometry_detector_factory

__all__ = [
    'Handle',
    'Clock',
    'Scheduler',
    'DomEvent',
    'EventSource',
    'Viewport',
    'IntersectionEntry',
    'VisibilityDetector',
    'VisibilityDetectorFactory',
    'SelectorSyntaxError',
    'matches_selector',
    'parse_selector',
    'Document',
    'Element',
    'Rect',
    'AsyncioScheduler',
    'VirtualScheduler',
    'GeometryIntersectionObserver',
    'geometry_detector_factory',
]
