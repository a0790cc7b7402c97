"""FastAPI application factory.

Creates the app with logging middleware, lifespan events for logging setup
and Redis shutdown, error handlers for the pipeline error taxonomy, and the
v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, status
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response

from src.app.api.middleware.logging import LoggingMiddleware
from src.app.api.v1.router import router as v1_router
from src.app.config import get_settings
from src.app.core.errors import NotFoundError, ParseError, UpstreamError, ValidationError
from src.app.core.logging import configure_structlog
from src.app.core.monitoring import get_metrics_response
from src.app.core.redis import close_redis

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging on startup, close Redis on shutdown."""
    settings = get_settings()
    configure_structlog()
    logger.info("app.started", environment=settings.ENVIRONMENT.value)

    yield

    await close_redis()
    logger.info("app.stopped")


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Map pipeline errors to HTTP status codes."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)

    @app.exception_handler(ParseError)
    async def parse_handler(request: Request, exc: ParseError) -> JSONResponse:
        logger.error("app.stored_document_invalid", path=request.url.path, error=str(exc))
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    @app.exception_handler(UpstreamError)
    async def upstream_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error("app.upstream_failed", path=request.url.path, error=str(exc))
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Meeting Minutes API",
        version="0.1.0",
        description="Caption transcripts to structured meeting minutes",
        lifespan=lifespan,
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    register_error_handlers(app)

    # Include v1 API router (health, jobs)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
