"""Batch delivery callbacks.

HttpBatchDelivery posts each batch to the ingestion endpoint once. Failures
of any kind are logged and the batch is discarded: telemetry delivery is
best effort and must never raise into the batcher or the host page.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class DeliveryConfig(BaseModel):
    """Configuration for HTTP batch delivery."""

    endpoint_url: str = Field(description="Ingestion endpoint accepting {data: [...]} batches")
    api_key: Optional[str] = Field(default=None, description="Static shared secret sent with every batch")
    api_key_header: str = Field(default="x-wp-key", description="Header carrying the shared secret")
    timeout_seconds: float = Field(default=10.0, description="Request timeout in seconds")
    headers: Dict[str, str] = Field(default_factory=dict, description="Additional HTTP headers")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class HttpBatchDelivery:
    """Delivery callback performing one POST per batch, without retries."""

    def __init__(self, config: DeliveryConfig, client: Optional[httpx.AsyncClient] = None):
        """Initialize delivery.

        Args:
            config: Endpoint and header settings
            client: Shared client; when omitted one is created and owned here
        """
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout=config.timeout_seconds, connect=5.0),
            verify=config.verify_ssl,
        )
        self._stats = {
            "batches_sent": 0,
            "batches_failed": 0,
        }

    def _build_headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json', **self.config.headers}
        if self.config.api_key:
            headers[self.config.api_key_header] = self.config.api_key
        return headers

    async def __call__(self, batched_data: Dict[str, List[Dict[str, Any]]]) -> Optional[Any]:
        """Post a batch and return the decoded response body, or None on failure."""
        event_count = len(batched_data.get('data', []))
        logger.debug(f"Batched events: {event_count}")

        try:
            response = await self.client.post(
                self.config.endpoint_url,
                content=json.dumps(batched_data),
                headers=self._build_headers(),
            )
        except httpx.HTTPError as e:
            self._stats["batches_failed"] += 1
            logger.error(f"Error sending to endpoint: {e}")
            return None

        if not response.is_success:
            self._stats["batches_failed"] += 1
            logger.warning(
                f"Endpoint rejected batch of {event_count} events: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
            return None

        self._stats["batches_sent"] += 1
        try:
            result = response.json()
        except ValueError:
            logger.warning(f"Endpoint response was not JSON: {response.text[:200]}")
            return None

        logger.debug(f"Endpoint response: {result}")
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)


class LoggingDelivery:
    """Delivery callback that only logs batches; used when no endpoint is configured."""

    def __init__(self, keep_batches: bool = False):
        self.keep_batches = keep_batches
        self.batches: List[Dict[str, List[Dict[str, Any]]]] = []

    def __call__(self, batched_data: Dict[str, List[Dict[str, Any]]]) -> None:
        logger.info(f"Batched events: {json.dumps(batched_data['data'], default=str)}")
        if self.keep_batches:
            self.batches.append(batched_data)

    async def aclose(self) -> None:
        return None
