"""Session identity provider.

The session id is a random 36-character token grouped like a UUID. It is
generated once per storage scope and reused until the entry is cleared.
"""

import logging
import secrets
import uuid

from .storage import KeyValueStorage, StorageUnavailableError

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "tracking_session"


def generate_session_token() -> str:
    """Return 16 random bytes formatted as 8-4-4-4-12 hex groups."""
    return str(uuid.UUID(bytes=secrets.token_bytes(16)))


class SessionIdentityProvider:
    """Reads or creates the persisted session token."""

    def __init__(self, storage: KeyValueStorage, key: str = SESSION_STORAGE_KEY):
        self.storage = storage
        self.key = key

    def get_session_id(self) -> str:
        """Return the stored token, creating and persisting one if absent.

        When the storage is unavailable a fresh token is returned and not
        persisted, so every call yields a new id until storage recovers.
        """
        try:
            session = self.storage.get_item(self.key)
        except StorageUnavailableError as e:
            logger.debug(f"Session storage unavailable, using ephemeral id: {e}")
            return generate_session_token()

        if session:
            return session

        session = generate_session_token()
        try:
            self.storage.set_item(self.key, session)
        except StorageUnavailableError as e:
            logger.debug(f"Could not persist session id: {e}")
        return session

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except StorageUnavailableError as e:
            logger.warning(f"Could not clear session id: {e}")
