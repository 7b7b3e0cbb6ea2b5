"""FastAPI application for the tracker batch relay.

The relay receives ``{"data": [...]}`` batches from trackers and forwards
them to the upstream ingestion service, and serves the per-page tracker
metadata.
"""

import logging
import time
import uuid
from datetime import datetime
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import RelaySettings
from .routes import router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
APP_TITLE = "Tracker Batch Relay"


def create_relay_app(
    settings: Optional[RelaySettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Create and configure the relay application.

    Args:
        settings: Relay settings; read from the environment when omitted
        http_client: Client used for upstream calls; one per request when omitted

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(title=APP_TITLE, version=APP_VERSION)
    app.state.settings = settings or RelaySettings.from_env()
    app.state.http_client = http_client
    app.state.started_at = datetime.utcnow()

    @app.middleware("http")
    async def add_request_id_and_logging(request: Request, call_next):
        """Add request ID and logging middleware."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        duration = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
            }
        )
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with the relay's error format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": str(exc.detail)},
        )

    @app.get("/health")
    async def health():
        uptime = (datetime.utcnow() - app.state.started_at).total_seconds()
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "upstream_configured": bool(app.state.settings.upstream_url),
            "uptime_seconds": round(uptime, 3),
        }

    app.include_router(router)
    return app
