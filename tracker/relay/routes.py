"""Relay API routes.

Batches posted by trackers are checked against the shared secret, logged,
and forwarded unchanged to the upstream ingestion URL. The relay does not
retry or store batches.
"""

import hmac
import json
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ..models.events import BatchPayload
from ..models.meta import TrackerMeta, build_tracker_meta
from .config import RelaySettings

logger = logging.getLogger(__name__)
batch_logger = logging.getLogger("tracker.relay.batches")

router = APIRouter(prefix="/tracking/v1", tags=["tracking"])


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def require_api_key(request: Request, settings: RelaySettings = Depends(get_settings)) -> None:
    """Reject requests whose key header does not match the shared secret."""
    if not settings.api_password:
        raise HTTPException(status_code=503, detail="Relay API password not configured")

    provided = request.headers.get(settings.api_key_header, "")
    if not hmac.compare_digest(provided.encode("utf-8"), settings.api_password.encode("utf-8")):
        logger.warning(f"Rejected batch with invalid {settings.api_key_header} header")
        raise HTTPException(status_code=401, detail="Invalid API key")


async def _forward(client: httpx.AsyncClient, settings: RelaySettings, body: str) -> httpx.Response:
    headers = {'Content-Type': 'application/json'}
    if settings.upstream_api_key:
        headers[settings.upstream_key_header] = settings.upstream_api_key
    return await client.post(
        settings.upstream_url,
        content=body,
        headers=headers,
        timeout=settings.upstream_timeout_seconds,
    )


@router.post("/batch", dependencies=[Depends(require_api_key)])
async def receive_batch(
    payload: BatchPayload,
    request: Request,
    settings: RelaySettings = Depends(get_settings),
):
    """Forward a tracker batch to the upstream ingestion service."""
    body = json.dumps(payload.model_dump(mode="json"))
    batch_logger.info(f"Received: {body}")

    if not settings.upstream_url:
        logger.error("Upstream URL is not configured")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Upstream URL not configured"},
        )

    client: Optional[httpx.AsyncClient] = request.app.state.http_client
    try:
        if client is not None:
            response = await _forward(client, settings, body)
        else:
            async with httpx.AsyncClient() as owned_client:
                response = await _forward(owned_client, settings, body)
    except httpx.HTTPError as e:
        logger.error(f"Upstream delivery failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": str(e) or type(e).__name__},
        )

    batch_logger.info(f"Upstream Response: Code {response.status_code}, Body: {response.text}")
    return {"status": "success", "code": response.status_code, "body": response.text}


@router.get("/meta", response_model=TrackerMeta)
async def tracker_meta(
    request: Request,
    page_url: str = Query(description="Canonical URL of the page being viewed"),
    page_id: Optional[str] = Query(default=None, description="Host page identifier"),
    settings: RelaySettings = Depends(get_settings),
):
    """Build the metadata object a page passes to its tracker."""
    return build_tracker_meta(
        page_url=page_url,
        page_id=page_id,
        user_agent=request.headers.get("user-agent"),
        remote_addr=request.client.host if request.client else None,
        api_password=settings.api_password,
    )
