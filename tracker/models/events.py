"""Pydantic models for tracked page events and delivery batches.

This module defines the events emitted by each observer, the normalized
EventRecord that is buffered by the batcher, and the BatchPayload wrapper
sent to the ingestion endpoint.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    """Source tag for buffered event records."""
    SCROLL = "scroll"
    CLICK = "click"
    ENGAGEMENT = "engagement"
    INTERACTION = "interaction"
    VISIBLE = "visible"


class InteractionAction(str, Enum):
    """Action reported for a toggle widget click."""
    OPEN = "open"
    CLOSE = "close"


class WidgetState(str, Enum):
    """Persisted state of a toggle widget."""
    OPEN = "open"
    CLOSED = "closed"


class ScrollEvent(BaseModel):
    """Scroll depth threshold crossing."""

    scroll_percent: Union[int, float] = Field(description="Crossed threshold as a percentage")
    velocity: int = Field(default=0, description="Scroll velocity in pixels per second")
    page_id: Optional[Union[int, str]] = Field(default=None, description="Host page identifier")
    session_id: Optional[str] = Field(default=None, description="Session identifier")
    ts: int = Field(description="Milliseconds since epoch")


class ClickEvent(BaseModel):
    """Click on an interactive element."""

    link_text: Optional[str] = Field(default=None, description="Trimmed visible text, max 100 chars")
    target_url: Optional[str] = Field(default=None, description="Raw href attribute")
    position_in_view: float = Field(description="Element position relative to viewport height (0-1)")
    internal: bool = Field(default=False, description="Whether href points to the current origin")
    page_id: Optional[Union[int, str]] = Field(default=None, description="Host page identifier")
    session_id: Optional[str] = Field(default=None, description="Session identifier")
    ts: int = Field(description="Milliseconds since epoch")

    @field_validator('position_in_view')
    @classmethod
    def validate_position(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError("position_in_view must be between 0 and 1")
        return v


class EngagementEvent(BaseModel):
    """Periodic engagement sample."""

    active_time: int = Field(description="Active time in whole seconds")
    total_time: int = Field(description="Elapsed time since start in whole seconds")
    ts: int = Field(description="Milliseconds since epoch")


class InteractionEvent(BaseModel):
    """Open/close transition of a toggle widget."""

    element_type: Optional[str] = Field(default=None, description="Value of the widget marker attribute")
    element_id: str = Field(description="Stable element identifier")
    interaction_type: InteractionAction = Field(description="Action performed by the click")
    state: WidgetState = Field(description="Widget state after the click")
    label: str = Field(description="Visible label, element id or 'unknown'")
    ts: int = Field(description="Milliseconds since epoch")


class VisibilityEvent(BaseModel):
    """Tracked section entering the viewport."""

    id: str = Field(description="Element id, data-track-id or anonymous token")
    ts: int = Field(description="Milliseconds since epoch")


class EventRecord(BaseModel):
    """Normalized record buffered by the batcher and delivered in batches.

    Source-specific fields are either nested under ``meta`` (scroll, click)
    or carried as extra top-level fields (engagement, interaction, visible).
    """

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    session_id: str = Field(description="Session identifier")
    page_url: Optional[str] = Field(default=None, description="Canonical page URL")
    event_type: EventType = Field(description="Observer that produced the event")
    ts: int = Field(description="Milliseconds since epoch")
    meta: Optional[Dict[str, Any]] = Field(default=None, description="Nested source payload")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Forwarded host metadata")

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the wire representation, omitting unset optional sections."""
        payload = self.model_dump(mode="json")
        if payload.get("meta") is None:
            payload.pop("meta", None)
        if payload.get("context") is None:
            payload.pop("context", None)
        return payload


class BatchPayload(BaseModel):
    """Body of one delivery: ``{"data": [event, ...]}``."""

    data: List[Dict[str, Any]] = Field(default_factory=list, description="Batched event records")

    @property
    def size(self) -> int:
        return len(self.data)
