"""In-memory page model used to drive the observers without a browser.

The Document implements both the EventSource and Viewport capabilities.
Elements carry attributes, visible text and document-relative geometry so
click positions and viewport intersections can be computed.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from .ports import DomEvent, Listener
from .selectors import matches_selector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Viewport-relative bounding box (vertical extent only)."""
    top: float
    bottom: float

    @property
    def height(self) -> float:
        return self.bottom - self.top


class Element:
    """Element node in the in-memory page model."""

    def __init__(
        self,
        tag_name: str,
        id: Optional[str] = None,
        classes: Optional[List[str]] = None,
        attributes: Optional[Dict[str, str]] = None,
        text: str = "",
        offset_top: float = 0.0,
        height: float = 0.0,
    ):
        """Initialize element.

        Args:
            tag_name: Element tag, stored lower-case
            id: DOM id
            classes: Class names
            attributes: Other attributes (href, data-*)
            text: Own visible text
            offset_top: Top edge relative to the document
            height: Rendered height in pixels
        """
        self.tag_name = tag_name.lower()
        self._attributes: Dict[str, str] = dict(attributes or {})
        if id:
            self._attributes['id'] = id
        if classes:
            self._attributes['class'] = " ".join(classes)
        self.text = text
        self.offset_top = offset_top
        self.height = height
        self.parent: Optional["Element"] = None
        self.children: List["Element"] = []
        self.owner: Optional["Document"] = None

    @property
    def id(self) -> str:
        return self._attributes.get('id', "")

    @property
    def class_list(self) -> List[str]:
        return self._attributes.get('class', "").split()

    @property
    def attributes(self) -> Dict[str, str]:
        return dict(self._attributes)

    @property
    def inner_text(self) -> str:
        """Own text followed by descendant text, like innerText for block content."""
        parts = [self.text] + [child.inner_text for child in self.children]
        return " ".join(part for part in parts if part)

    def get_attribute(self, name: str) -> Optional[str]:
        return self._attributes.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        self._attributes[name] = str(value)

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def remove_attribute(self, name: str) -> None:
        self._attributes.pop(name, None)

    def append(self, child: "Element") -> "Element":
        """Append child and return it."""
        child.parent = self
        child.owner = self.owner
        for node in child.iter_descendants():
            node.owner = self.owner
        self.children.append(child)
        return child

    def iter_descendants(self) -> Iterator["Element"]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def matches(self, selector: str) -> bool:
        return matches_selector(self, selector)

    def closest(self, selector: str) -> Optional["Element"]:
        """Nearest inclusive ancestor matching selector."""
        node: Optional[Element] = self
        while node is not None:
            if node.matches(selector):
                return node
            node = node.parent
        return None

    def get_bounding_client_rect(self) -> Rect:
        scroll_top = self.owner.scroll_top if self.owner is not None else 0.0
        top = self.offset_top - scroll_top
        return Rect(top=top, bottom=top + self.height)

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        return f"Element(<{self.tag_name}{ident}>)"


class Document:
    """Page with a body element, scroll geometry and listener registry."""

    def __init__(
        self,
        origin: str = "https://example.com",
        scroll_height: float = 0.0,
        viewport_height: float = 800.0,
        hidden: bool = False,
    ):
        self._origin = origin.rstrip('/')
        self._scroll_height = scroll_height
        self._viewport_height = viewport_height
        self._scroll_top = 0.0
        self._hidden = hidden
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self.body = Element("body", height=scroll_height)
        self.body.owner = self

    # Viewport capability

    @property
    def scroll_top(self) -> float:
        return self._scroll_top

    @property
    def scroll_height(self) -> float:
        return self._scroll_height

    @property
    def viewport_height(self) -> float:
        return self._viewport_height

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def hidden(self) -> bool:
        return self._hidden

    # EventSource capability

    def add_listener(self, event_type: str, handler: Listener) -> None:
        self._listeners[event_type].append(handler)

    def remove_listener(self, event_type: str, handler: Listener) -> None:
        try:
            self._listeners[event_type].remove(handler)
        except ValueError:
            logger.debug(f"Listener for {event_type} was not registered")

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    def dispatch(self, event: DomEvent) -> None:
        """Deliver event to every listener; listener errors are logged and contained."""
        for handler in list(self._listeners.get(event.type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in {event.type} listener: {e}")

    # Queries

    def query_selector_all(self, selector: str) -> List[Element]:
        return [el for el in self.body.iter_descendants() if el.matches(selector)]

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for el in self.body.iter_descendants():
            if el.id == element_id:
                return el
        return None

    # Simulated user actions

    def click(self, element: Element, **detail: Any) -> None:
        self.dispatch(DomEvent(type="click", target=element, detail=detail))

    def scroll_to(self, scroll_top: float) -> None:
        max_scroll = max(0.0, self._scroll_height - self._viewport_height)
        self._scroll_top = min(max(0.0, scroll_top), max_scroll)
        self.dispatch(DomEvent(type="scroll", target=self.body))

    def resize(self, viewport_height: float) -> None:
        self._viewport_height = viewport_height
        self.dispatch(DomEvent(type="resize"))

    def set_hidden(self, hidden: bool) -> None:
        if hidden == self._hidden:
            return
        self._hidden = hidden
        self.dispatch(DomEvent(type="visibilitychange"))

    def move_mouse(self) -> None:
        self.dispatch(DomEvent(type="mousemove"))

    def press_key(self, key: str = "") -> None:
        self.dispatch(DomEvent(type="keydown", detail={'key': key}))

    def __repr__(self) -> str:
        return (
            f"Document(origin={self._origin}, scroll_top={self._scroll_top}, "
            f"scroll_height={self._scroll_height}, hidden={self._hidden})"
        )
