"""Per-page-view tracking metadata supplied by the host page."""

import hashlib
import re
import uuid
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


BOT_USER_AGENT_PATTERN = re.compile(r"bot|crawl|spider", re.IGNORECASE)
MOBILE_USER_AGENT_PATTERN = re.compile(
    r"Mobile|Android|Silk/|Kindle|BlackBerry|Opera Mini|Opera Mobi",
)


class TrackerMeta(BaseModel):
    """Host-supplied metadata for one page view.

    Unknown fields are preserved so they can be forwarded into events.
    """

    model_config = ConfigDict(extra="allow")

    page_id: Optional[Union[int, str]] = Field(default=None, description="Host page identifier")
    page_url: Optional[str] = Field(default=None, description="Canonical page URL")
    session_id: Optional[str] = Field(default=None, description="Session id, overwritten by the tracker")
    device_type: Optional[str] = Field(default=None, description="'mobile' or 'desktop'")
    is_bot: bool = Field(default=False, description="Whether the user agent looks like a bot")
    user_hash: Optional[str] = Field(default=None, description="SHA-256 of the client address")
    api_password: Optional[str] = Field(default=None, description="Shared secret sent with deliveries")

    def context_fields(self, names) -> Dict[str, Any]:
        """Return the named fields that are set, including extra fields."""
        data = self.model_dump()
        return {name: data[name] for name in names if data.get(name) is not None}


def is_bot_user_agent(user_agent: Optional[str]) -> bool:
    return bool(user_agent) and BOT_USER_AGENT_PATTERN.search(user_agent) is not None


def detect_device_type(user_agent: Optional[str]) -> str:
    if user_agent and MOBILE_USER_AGENT_PATTERN.search(user_agent):
        return "mobile"
    return "desktop"


def hash_client_address(remote_addr: Optional[str]) -> str:
    return hashlib.sha256((remote_addr or "anonymous").encode("utf-8")).hexdigest()


def build_tracker_meta(
    page_url: str,
    page_id: Optional[Union[int, str]] = 0,
    user_agent: Optional[str] = None,
    remote_addr: Optional[str] = None,
    api_password: Optional[str] = None,
    **extra: Any,
) -> TrackerMeta:
    """Build the metadata object a host page hands to the tracker.

    Args:
        page_url: Canonical URL of the page being viewed
        page_id: Host page identifier (0 when the page has none)
        user_agent: Request User-Agent header
        remote_addr: Client address, hashed before it leaves this function
        api_password: Shared secret the tracker sends with each batch
        **extra: Additional fields forwarded verbatim

    Returns:
        TrackerMeta for the page view
    """
    return TrackerMeta(
        page_id=page_id or 0,
        page_url=page_url,
        session_id=str(uuid.uuid4()),
        device_type=detect_device_type(user_agent),
        is_bot=is_bot_user_agent(user_agent),
        user_hash=hash_client_address(remote_addr),
        api_password=api_password,
        **extra,
    )
