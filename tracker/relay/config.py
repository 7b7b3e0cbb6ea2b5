"""Relay service configuration."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class RelaySettings:
    """Settings for the batch relay service."""

    # Shared secret expected in the inbound key header
    api_password: Optional[str] = None
    api_key_header: str = "x-wp-key"

    # Upstream ingestion
    upstream_url: Optional[str] = None
    upstream_api_key: Optional[str] = None
    upstream_key_header: str = "x-api-key"
    upstream_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Create settings from environment variables.

        Environment variables:
            TRACKER_RELAY_API_PASSWORD: Shared secret required from trackers
            TRACKER_RELAY_UPSTREAM_URL: Upstream ingestion URL
            TRACKER_RELAY_UPSTREAM_API_KEY: Key sent to the upstream
            TRACKER_RELAY_UPSTREAM_TIMEOUT: Upstream timeout in seconds
        """
        timeout = os.getenv("TRACKER_RELAY_UPSTREAM_TIMEOUT")
        settings = cls(
            api_password=os.getenv("TRACKER_RELAY_API_PASSWORD") or None,
            upstream_url=os.getenv("TRACKER_RELAY_UPSTREAM_URL") or None,
            upstream_api_key=os.getenv("TRACKER_RELAY_UPSTREAM_API_KEY") or None,
        )
        if timeout:
            try:
                settings.upstream_timeout_seconds = float(timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid TRACKER_RELAY_UPSTREAM_TIMEOUT: {timeout!r}")
        return settings
