"""Entry document model."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from overtime_engine.models.base import Base, TimestampMixin


class EntryRecord(Base, TimestampMixin):
    """A time or expense entry stored as a document.

    ``state``, ``owner_id`` and ``entry_date`` are copied out of the document
    for filtering; ``version`` is the compare-and-swap token.
    """

    __tablename__ = "entry"

    entry_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("kind IN ('hours', 'expense')", name="entry_kind_check"),
        CheckConstraint(
            "state IN ('draft', 'submitted', 'approved', 'rejected', 'returned')",
            name="entry_state_check",
        ),
        Index("entry_state_date_idx", "state", "entry_date"),
        Index("entry_owner_idx", "owner_id"),
    )
