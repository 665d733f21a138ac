"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shippost import __version__
from shippost.api.routes import announce, drafts, groups, health, projects, slack, webhooks
from shippost.config import get_settings
from shippost.container import Container, build_container
from shippost.core.errors import (
    ChannelDeliveryFailure,
    ConflictError,
    GenerationFailure,
    InvalidTransitionError,
    NotFoundError,
    PublishFailure,
    ShipPostError,
    ValidationError,
)
from shippost.observability import setup_logging

logger = structlog.get_logger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    InvalidTransitionError: 409,
    GenerationFailure: 502,
    PublishFailure: 502,
    ChannelDeliveryFailure: 502,
}


def _status_for(exc: ShipPostError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    if getattr(app.state, "container", None) is None:
        settings = get_settings()
        setup_logging(settings)
        app.state.container = build_container(settings)

    container: Container = app.state.container
    await container.startup()
    logger.info(
        "ShipPost API starting up",
        storage=container.settings.storage.backend,
        approval_channel=container.slack is not None,
    )

    yield

    logger.info("ShipPost API shutting down")


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Prebuilt object graph; built from config on startup when omitted

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="ShipPost API",
        description="Turn pushed commits into reviewed build-in-public posts.",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Service health checks"},
            {"name": "webhooks", "description": "Push webhooks and manual triggers"},
            {"name": "projects", "description": "Project management and on-demand generation"},
            {"name": "drafts", "description": "Draft review and approval"},
            {"name": "slack", "description": "Slack interactivity"},
            {"name": "announce", "description": "Feature and quick announcements outside the commit flow"},
            {"name": "groups", "description": "Manual group catalog and paste queue"},
        ],
    )
    app.state.container = container

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()

    @app.exception_handler(ShipPostError)
    async def domain_error_handler(request: Request, exc: ShipPostError):
        status_code = _status_for(exc)
        logger.info("Request rejected", path=request.url.path, status_code=status_code, error=str(exc))
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error_type": type(exc).__name__},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    app.include_router(health.router, tags=["health"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
    app.include_router(drafts.router, prefix="/api/drafts", tags=["drafts"])
    app.include_router(slack.router, prefix="/slack", tags=["slack"])
    app.include_router(announce.router, prefix="/announce", tags=["announce"])
    app.include_router(groups.router, prefix="/api/groups", tags=["groups"])

    return app
