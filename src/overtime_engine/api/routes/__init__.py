"""API routes."""

from overtime_engine.api.routes.entries import router as entries_router
from overtime_engine.api.routes.health import router as health_router
from overtime_engine.api.routes.holidays import router as holidays_router
from overtime_engine.api.routes.kpis import router as kpis_router
from overtime_engine.api.routes.tariffs import router as tariffs_router

__all__ = [
    "entries_router",
    "health_router",
    "holidays_router",
    "kpis_router",
    "tariffs_router",
]
