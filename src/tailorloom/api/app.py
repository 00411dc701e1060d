"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tailorloom.api.routes import conflicts, health, imports, mappings
from tailorloom.core.config import AppSettings
from tailorloom.core.exceptions import (
    ImportStartError,
    LockError,
    MappingNotFoundError,
    StoreError,
    TailorLoomError,
    UnknownSourceError,
)
from tailorloom.core.logging import configure_logging
from tailorloom.ingest.importer import ImportService
from tailorloom.persistence import create_persistence

logger = structlog.get_logger(__name__)

_STATUS_CODES: dict[type[TailorLoomError], int] = {
    UnknownSourceError: 404,
    MappingNotFoundError: 404,
    ImportStartError: 503,
    LockError: 503,
    StoreError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings = AppSettings()
    configure_logging(settings)
    persistence = create_persistence(settings)

    app.state.settings = settings
    app.state.persistence = persistence
    app.state.import_service = ImportService(
        settings=settings,
        identity_store=persistence.identity,
        import_store=persistence.imports,
        mapping_store=persistence.mappings,
        lock=persistence.lock,
    )
    logger.info("application_starting", environment=settings.environment, persistence=settings.persistence)
    yield
    logger.info("application_shutting_down")


async def tailorloom_error_handler(request: Request, exc: TailorLoomError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 400)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="TailorLoom Ingest",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(TailorLoomError, tailorloom_error_handler)
    app.include_router(health.router)
    app.include_router(mappings.router, prefix="/mappings")
    app.include_router(imports.router, prefix="/imports")
    app.include_router(conflicts.router, prefix="/conflicts")
    return app
