"""Batch relay service between trackers and the ingestion backend."""

from .config import RelaySettings
from .main import create_relay_app

__all__ = [
    'RelaySettings',
    'create_relay_app',
]
