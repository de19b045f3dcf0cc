"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from tubesync.api.channels import router as channels_router
from tubesync.api.health import router as health_router
from tubesync.api.replies import router as replies_router
from tubesync.api.videos import router as videos_router
from tubesync.config import Settings
from tubesync.database import create_engine
from tubesync.exceptions import (
    ChannelNotFoundError,
    InternalServerError,
    InvalidPageSizeError,
    InvalidPageTokenError,
    SyncInProgressError,
    SyncPreconditionError,
)
from tubesync.models.base import Base
from tubesync.services.sync_service import ChannelLockRegistry
from tubesync.youtube.base import CatalogAuthorizationError, CatalogError
from tubesync.youtube.client import YouTubeCatalogClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from tubesync.youtube.base import CatalogClient

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)


def _ensure_sqlite_dir(database_url: str) -> None:
    if not database_url.startswith("sqlite") or "///" not in database_url:
        return
    db_path = database_url.split("///", 1)[-1]
    if db_path and db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    settings.validate_runtime_security()
    _configure_logging(settings.debug)
    logger.info("Starting TubeSync (debug=%s)", settings.debug)

    try:
        _ensure_sqlite_dir(settings.database_url)
        engine, session_factory = create_engine(settings)
        app.state.engine = engine
        app.state.session_factory = session_factory
    except Exception as exc:
        logger.critical(
            "Failed to initialize database: %s. Check database path and permissions.", exc
        )
        raise

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        logger.critical("Failed to create database schema: %s.", exc)
        raise

    owned_client: YouTubeCatalogClient | None = None
    if getattr(app.state, "catalog_client", None) is None:
        owned_client = YouTubeCatalogClient.from_settings(settings)
        app.state.catalog_client = owned_client

    yield

    if owned_client is not None:
        try:
            await owned_client.aclose()
        except Exception as exc:
            logger.error("Error during YouTube client shutdown: %s", exc, exc_info=True)

    try:
        await engine.dispose()
    except Exception as exc:
        logger.error("Error during engine disposal: %s", exc, exc_info=True)

    logger.info("TubeSync stopped")


def create_app(
    settings: Settings | None = None,
    catalog_client: CatalogClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``catalog_client`` replaces the YouTube client built from settings; the
    app does not close a client it was handed.
    """
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="TubeSync",
        description="YouTube channel sync and reconciliation service",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.catalog_client = catalog_client
    app.state.channel_locks = ChannelLockRegistry()

    app.include_router(health_router)
    app.include_router(channels_router)
    app.include_router(videos_router)
    app.include_router(replies_router)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(ChannelNotFoundError)
    async def channel_not_found_handler(
        request: Request, exc: ChannelNotFoundError
    ) -> JSONResponse:
        logger.info("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SyncPreconditionError)
    async def sync_precondition_handler(
        request: Request, exc: SyncPreconditionError
    ) -> JSONResponse:
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(SyncInProgressError)
    async def sync_in_progress_handler(
        request: Request, exc: SyncInProgressError
    ) -> JSONResponse:
        logger.info("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InvalidPageTokenError)
    async def invalid_page_token_handler(
        request: Request, exc: InvalidPageTokenError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(InvalidPageSizeError)
    async def invalid_page_size_handler(
        request: Request, exc: InvalidPageSizeError
    ) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        logger.error(
            "CatalogError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        if isinstance(exc, CatalogAuthorizationError):
            detail = "YouTube rejected the configured credentials"
        else:
            detail = "YouTube request failed"
        return JSONResponse(status_code=502, content={"detail": detail})

    @app.exception_handler(InternalServerError)
    async def internal_server_error_handler(
        request: Request, exc: InternalServerError
    ) -> JSONResponse:
        logger.error(
            "InternalServerError in %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error(
            "OperationalError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Database temporarily unavailable"},
        )

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "tubesync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
