"""Approver assignments per entry owner."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from overtime_engine.models.base import Base, TimestampMixin


class ApproverAssignmentRecord(Base, TimestampMixin):
    __tablename__ = "approver_assignment"

    owner_id: Mapped[str] = mapped_column(String, primary_key=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    hours_approver_id: Mapped[str | None] = mapped_column(String)
    expense_approver_id: Mapped[str | None] = mapped_column(String)
    locality: Mapped[str | None] = mapped_column(String)
