"""Pytest fixtures for overtime engine tests."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio

from overtime_engine.calculators.day_classifier import Holiday, HolidayScope
from overtime_engine.calculators.types import DEFAULT_TARIFFS, TariffRate
from overtime_engine.clock import FixedClock
from overtime_engine.services.entry_service import EntryService
from overtime_engine.services.rollup_service import RollupService
from overtime_engine.services.tariff_service import TariffService
from overtime_engine.store.base import ApproverAssignment
from overtime_engine.store.memory import InMemoryStore

# Sunday 15 June 2025
FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)

TECH = "tech-1"
OTHER_TECH = "tech-2"
LEAD = "lead-1"
OFFICE = "office-1"
MANAGER = "manager-1"

SATURDAY = date(2025, 6, 14)
TUESDAY = date(2025, 6, 10)
THURSDAY = date(2025, 6, 12)
SUNDAY = date(2025, 6, 15)
LOCAL_FEAST = date(2025, 7, 31)


def default_rates(year: int) -> list[TariffRate]:
    return [
        TariffRate(year=year, rate_code=code, amount=amount, unit=code.default_unit)
        for code, amount in DEFAULT_TARIFFS.items()
    ]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest_asyncio.fixture
async def store() -> InMemoryStore:
    """In-memory store with 2025 default tariffs, one holiday and approvers."""
    store = InMemoryStore()
    await store.insert_year_if_empty(2025, default_rates(2025))
    await store.add_holiday(Holiday(holiday_date=THURSDAY, name="Corpus Christi"))
    await store.add_holiday(
        Holiday(
            holiday_date=LOCAL_FEAST,
            name="San Ignacio",
            scope=HolidayScope.LOCAL,
            locality="bilbao",
        )
    )
    await store.set_assignment(
        ApproverAssignment(
            owner_id=TECH,
            role="technician",
            hours_approver_id=LEAD,
            expense_approver_id=OFFICE,
            locality="bilbao",
        )
    )
    await store.set_assignment(
        ApproverAssignment(
            owner_id=OTHER_TECH,
            role="technician",
            hours_approver_id=LEAD,
            expense_approver_id=OFFICE,
        )
    )
    return store


@pytest.fixture
def entry_service(store: InMemoryStore, clock: FixedClock) -> EntryService:
    return EntryService(
        entries=store,
        tariffs=store,
        holidays=store,
        identity=store,
        clock=clock,
    )


@pytest.fixture
def tariff_service(store: InMemoryStore, clock: FixedClock) -> TariffService:
    return TariffService(tariffs=store, holidays=store, clock=clock)


@pytest.fixture
def rollup_service(store: InMemoryStore) -> RollupService:
    return RollupService(entries=store, rollups=store)
