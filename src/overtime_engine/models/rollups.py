"""Stored KPI rollups."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from overtime_engine.models.base import Base


class KpiRollupRecord(Base):
    """Rollup document for one period key (``YYYY`` or ``YYYY_MM``)."""

    __tablename__ = "kpi_rollup"

    period: Mapped[str] = mapped_column(String(7), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
