"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from overtime_engine.exceptions import StorageUnavailableError

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    storage: str
    version: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(request: Request) -> HealthResponse:
    """Check API and storage health."""
    state = request.app.state
    storage_status = "healthy"
    try:
        await state.store.list_tariffs(state.clock.today().year)
    except StorageUnavailableError:
        storage_status = "unhealthy"

    return HealthResponse(
        status="healthy" if storage_status == "healthy" else "degraded",
        timestamp=state.clock.now(),
        storage=storage_status,
        version=state.settings.engine_version,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
