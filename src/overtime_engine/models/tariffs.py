"""Tariff table, per-user override and holiday models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from overtime_engine.models.base import Base, TimestampMixin


class TariffRateRecord(Base, TimestampMixin):
    """General tariff row; one amount per (year, rate_code)."""

    __tablename__ = "tariff_rate"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rate_code: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(8), nullable=False)

    __table_args__ = (
        UniqueConstraint("year", "rate_code", name="tariff_rate_year_code_unique"),
        CheckConstraint("amount >= 0", name="tariff_rate_amount_check"),
    )


class TariffOverrideRecord(Base, TimestampMixin):
    """Per-user tariff that wins over the general row for that user."""

    __tablename__ = "tariff_override"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rate_code: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(8), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "year", "rate_code", name="tariff_override_user_year_code_unique"
        ),
        CheckConstraint("amount >= 0", name="tariff_override_amount_check"),
    )


class HolidayRecord(Base):
    """Holiday calendar date."""

    __tablename__ = "holiday"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    scope: Mapped[str] = mapped_column(String(16), nullable=False, default="national")
    # Empty string for non-local holidays so the unique constraint holds
    locality: Mapped[str] = mapped_column(String, nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("holiday_date", "locality", name="holiday_date_locality_unique"),
        CheckConstraint(
            "scope IN ('national', 'regional', 'local')",
            name="holiday_scope_check",
        ),
    )
