"""FastAPI status application factory.

The app exposes a single read-only route, ``GET /``, rendering a fresh
snapshot of the status model on every request. Every other path or method
answers 404 with a JSON ``{error, message}`` body.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pixgg_listener import SERVICE_NAME, __version__
from pixgg_listener.api.middleware.cors import setup_cors
from pixgg_listener.api.schemas import (
    ErrorResponse,
    LastEventBlock,
    PusherBlock,
    StatusResponse,
    UptimeBlock,
    WebhooksBlock,
)
from pixgg_listener.config.settings import AppConfig
from pixgg_listener.errors.definitions import ErrNotFound
from pixgg_listener.metrics.collector import ListenerMetrics
from pixgg_listener.metrics.middleware import PrometheusMiddleware
from pixgg_listener.status.model import StatusModel, StatusSnapshot, isoformat, utc_now


def render_status(snapshot: StatusSnapshot, config: AppConfig) -> StatusResponse:
    """Build the ``GET /`` body from a status snapshot."""
    last = snapshot.last_event
    return StatusResponse(
        service=SERVICE_NAME,
        version=__version__,
        status=snapshot.status.value,
        pusher=PusherBlock(
            connected=snapshot.pusher_connected,
            cluster=config.pusher.cluster,
            channel=config.pusher.channel_key,
            event=config.pusher.event_name,
        ),
        webhooks=WebhooksBlock(
            sent=snapshot.webhooks_sent,
            failed=snapshot.webhooks_failed,
            target_url=config.webhook.target_url,
        ),
        uptime=UptimeBlock(
            start_time=isoformat(snapshot.start_time),
            seconds=snapshot.uptime_seconds,
            formatted=snapshot.uptime_formatted,
        ),
        last_event=LastEventBlock(**last.to_dict()) if last is not None else None,
        timestamp=isoformat(utc_now()),
    )


def create_app(
    *,
    config: AppConfig | None = None,
    status: StatusModel | None = None,
    metrics: ListenerMetrics | None = None,
) -> FastAPI:
    """Build and return the status application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
        status: The process status model. A fresh one is created if omitted.
        metrics: Optional metrics; enables the request metrics middleware.
    """
    if config is None:
        config = AppConfig()
    if status is None:
        status = StatusModel()

    app = FastAPI(
        title=SERVICE_NAME,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.status = status

    # -- Middleware --
    setup_cors(app)
    if metrics is not None:
        app.add_middleware(PrometheusMiddleware, registry=metrics.registry)

    # -- Error handlers --
    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown paths and wrong methods alike are reported as not found.
        body = ErrorResponse(
            error="Not Found",
            message=f"{ErrNotFound.message}: {request.method} {request.url.path}",
        )
        return JSONResponse(status_code=ErrNotFound.status_code, content=body.model_dump())

    # -- Status route --
    @app.get("/", response_model=StatusResponse, tags=["status"])
    async def status_snapshot() -> StatusResponse:
        return render_status(status.snapshot(), config)

    return app
