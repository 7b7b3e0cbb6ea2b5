"""Event buffering and batched delivery."""

from .batcher import EventBatcher, DeliveryCallback, DEFAULT_FLUSH_INTERVAL_MS

__all__ = [
    'EventBatcher',
    'DeliveryCallback',
    'DEFAULT_FLUSH_INTERVAL_MS',
]
