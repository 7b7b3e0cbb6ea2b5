"""Delivery callbacks for flushed batches."""

from .http_delivery import DeliveryConfig, HttpBatchDelivery, LoggingDelivery

__all__ = [
    'DeliveryConfig',
    'HttpBatchDelivery',
    'LoggingDelivery',
]
