"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from overtime_engine.api.routes import (
    entries_router,
    health_router,
    holidays_router,
    kpis_router,
    tariffs_router,
)
from overtime_engine.clock import Clock, SystemClock
from overtime_engine.config import Settings, get_settings
from overtime_engine.database import create_all, dispose_db, init_db
from overtime_engine.exceptions import (
    ConcurrentModificationError,
    EngineError,
    EntryNotFoundError,
    LifecycleError,
    MissingCommentError,
    PermissionDeniedError,
    StorageUnavailableError,
    TariffLockedError,
    TariffNotFoundError,
    ValidationError,
)
from overtime_engine.store.sql import SqlStore

logger = logging.getLogger(__name__)

# Most specific class first
ERROR_STATUS: list[tuple[type[EngineError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (EntryNotFoundError, status.HTTP_404_NOT_FOUND),
    (TariffNotFoundError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MissingCommentError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (TariffLockedError, status.HTTP_409_CONFLICT),
    (LifecycleError, status.HTTP_409_CONFLICT),
    (ConcurrentModificationError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: EngineError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def create_app(
    store: Any | None = None,
    clock: Clock | None = None,
    app_settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``store`` implements every store protocol. When omitted, the lifespan
    opens the SQL database named by ``DATABASE_URL``.
    """
    app_settings = app_settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        # Startup
        owns_engine = store is None
        if owns_engine:
            engine, session_factory = init_db()
            await create_all(engine)
            app.state.store = SqlStore(session_factory)
        yield
        # Shutdown
        if owns_engine:
            await dispose_db()

    app = FastAPI(
        title="Overtime Engine API",
        description="Tariff resolution, approval workflow and KPI rollups for overtime and expenses",
        version=app_settings.engine_version,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.clock = clock or SystemClock()
    app.state.settings = app_settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        """Map typed engine errors to status codes."""
        status_code = status_for(exc)
        if exc.retryable:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(entries_router, prefix="/api/v1")
    app.include_router(tariffs_router, prefix="/api/v1")
    app.include_router(holidays_router, prefix="/api/v1")
    app.include_router(kpis_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
