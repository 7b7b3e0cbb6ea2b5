"""Session identity and client-side storage."""

from .storage import (
    KeyValueStorage,
    MemoryStorage,
    JsonFileStorage,
    StorageUnavailableError,
    process_storage,
)
from .provider import SessionIdentityProvider, generate_session_token, SESSION_STORAGE_KEY

__all__ = [
    'KeyValueStorage',
    'MemoryStorage',
    'JsonFileStorage',
    'StorageUnavailableError',
    'process_storage',
    'SessionIdentityProvider',
    'generate_session_token',
    'SESSION_STORAGE_KEY',
]
