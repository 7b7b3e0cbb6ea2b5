"""Capability interfaces between the observers and the page environment.

Observers never touch a global document, window or timer API directly.
They receive these capabilities at construction, so the same code runs
against the in-memory page model, a virtual clock in tests, or any other
adapter that satisfies the protocols.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable


class Handle(Protocol):
    """Cancellable scheduled callback."""

    def cancel(self) -> None:
        ...


class Clock(Protocol):
    """Time source."""

    def now_ms(self) -> int:
        """Wall-clock milliseconds since epoch."""
        ...

    def perf_ms(self) -> float:
        """Monotonic high-resolution milliseconds."""
        ...


class Scheduler(Clock, Protocol):
    """Timer and animation-frame scheduling."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Handle:
        ...

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> Handle:
        ...

    def request_frame(self, callback: Callable[[float], None]) -> Handle:
        """Run callback on the next frame with the frame's perf timestamp."""
        ...


@dataclass
class DomEvent:
    """Event dispatched by an EventSource."""
    type: str
    target: Optional[Any] = None
    detail: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[DomEvent], None]


@runtime_checkable
class EventSource(Protocol):
    """Delegated event listener registration (document body and window)."""

    def add_listener(self, event_type: str, handler: Listener) -> None:
        ...

    def remove_listener(self, event_type: str, handler: Listener) -> None:
        ...


class Viewport(Protocol):
    """Scroll geometry and visibility state of the page."""

    @property
    def scroll_top(self) -> float:
        ...

    @property
    def scroll_height(self) -> float:
        ...

    @property
    def viewport_height(self) -> float:
        ...

    @property
    def origin(self) -> str:
        ...

    @property
    def hidden(self) -> bool:
        ...


@dataclass
class IntersectionEntry:
    """Intersection state change of one observed element."""
    target: Any
    is_intersecting: bool
    intersection_ratio: float
    time: float = 0.0


class VisibilityDetector(Protocol):
    """Viewport-intersection detection for a set of elements."""

    def observe(self, element: Any) -> None:
        ...

    def disconnect(self) -> None:
        ...


IntersectionCallback = Callable[[List[IntersectionEntry]], None]
VisibilityDetectorFactory = Callable[[IntersectionCallback, float], VisibilityDetector]
