"""Data models for the tracking pipeline."""

from .events import (
    EventType,
    InteractionAction,
    WidgetState,
    ScrollEvent,
    ClickEvent,
    EngagementEvent,
    InteractionEvent,
    VisibilityEvent,
    EventRecord,
    BatchPayload,
)
from .meta import (
    TrackerMeta,
    build_tracker_meta,
    is_bot_user_agent,
    detect_device_type,
    hash_client_address,
)

__all__ = [
    'EventType',
    'InteractionAction',
    'WidgetState',
    'ScrollEvent',
    'ClickEvent',
    'EngagementEvent',
    'InteractionEvent',
    'VisibilityEvent',
    'EventRecord',
    'BatchPayload',
    'TrackerMeta',
    'build_tracker_meta',
    'is_bot_user_agent',
    'detect_device_type',
    'hash_client_address',
]
