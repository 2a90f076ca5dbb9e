"""SQL store tests against a SQLite file database."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from overtime_engine.calculators.day_classifier import Holiday, HolidayScope
from overtime_engine.calculators.types import DayType, RateCode, TariffRate, TariffUnit
from overtime_engine.database import create_all, create_session_factory, get_engine
from overtime_engine.domain.rollups import Period
from overtime_engine.exceptions import (
    ConcurrentModificationError,
    EntryNotFoundError,
    StorageUnavailableError,
)
from overtime_engine.services.rollup_service import RollupService
from overtime_engine.services.state_machine import EntryState
from overtime_engine.store.base import ApproverAssignment
from overtime_engine.store.sql import SqlStore

from tests.conftest import LEAD, SATURDAY, TECH, THURSDAY, default_rates

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


class TestEntries:
    """Test entry documents and compare-and-swap."""

    async def test_insert_and_get(self, sql_store, entry_service_sql):
        entry = await entry_service_sql.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        loaded = await sql_store.get_entry(entry.entry_id)

        assert loaded == entry
        assert loaded.version == 1

    async def test_get_missing(self, sql_store):
        assert await sql_store.get_entry("missing") is None

    async def test_compare_and_swap(self, sql_store, entry_service_sql):
        entry = await entry_service_sql.create_time_entry(TECH, SATURDAY, "10:00", "15:00")

        version = await sql_store.compare_and_swap(replace(entry, description="late call"), 1)
        assert version == 2

        with pytest.raises(ConcurrentModificationError):
            await sql_store.compare_and_swap(replace(entry, description="stale"), 1)

        loaded = await sql_store.get_entry(entry.entry_id)
        assert loaded.description == "late call"
        assert loaded.version == 2

    async def test_compare_and_swap_missing(self, sql_store, entry_service_sql):
        entry = await entry_service_sql.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        await sql_store.delete_entry(entry.entry_id, 1)

        with pytest.raises(EntryNotFoundError):
            await sql_store.compare_and_swap(entry, 1)

    async def test_delete_guarded_by_version(self, sql_store, entry_service_sql):
        entry = await entry_service_sql.create_time_entry(TECH, SATURDAY, "10:00", "15:00")

        with pytest.raises(ConcurrentModificationError):
            await sql_store.delete_entry(entry.entry_id, 7)
        assert await sql_store.get_entry(entry.entry_id) is not None

    async def test_find_entries_filters(self, sql_store, entry_service_sql):
        june = await entry_service_sql.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        await entry_service_sql.create_time_entry("tech-2", date(2025, 7, 1), "10:00", "11:00")
        await entry_service_sql.transition(june.entry_id, "submit", TECH, "technician")

        assert len(await sql_store.find_entries()) == 2
        assert [e.entry_id for e in await sql_store.find_entries(owner_id=TECH)] == [june.entry_id]
        assert len(await sql_store.find_entries(state=EntryState.SUBMITTED)) == 1
        assert len(await sql_store.find_entries(start=date(2025, 6, 1), end=date(2025, 6, 30))) == 1


class TestTariffs:
    """Test tariff rows, overrides and atomic year insert."""

    async def test_year_insert_once(self, sql_store):
        assert await sql_store.insert_year_if_empty(2026, default_rates(2026)) is True
        assert await sql_store.insert_year_if_empty(2026, default_rates(2026)) is False
        assert len(await sql_store.list_tariffs(2026)) == len(default_rates(2026))

    async def test_upsert_and_override(self, sql_store):
        await sql_store.upsert_tariff(
            TariffRate(2025, RateCode.OVERTIME_WORKDAY, Decimal("16.50"), TariffUnit.HOUR)
        )
        await sql_store.upsert_tariff(
            TariffRate(2025, RateCode.OVERTIME_WORKDAY, Decimal("19.00"), TariffUnit.HOUR, TECH)
        )

        general = await sql_store.get_tariff(2025, RateCode.OVERTIME_WORKDAY)
        override = await sql_store.get_tariff(2025, RateCode.OVERTIME_WORKDAY, TECH)

        assert general.amount == Decimal("16.50")
        assert override.amount == Decimal("19.00")
        assert override.user_id == TECH
        # Overrides are not part of the general table
        assert all(r.user_id is None for r in await sql_store.list_tariffs(2025))

    async def test_missing_tariff(self, sql_store):
        assert await sql_store.get_tariff(1999, RateCode.PER_DIEM_FULL) is None


class TestHolidaysAndIdentity:
    async def test_holidays_for_year(self, sql_store):
        await sql_store.add_holiday(Holiday(date(2026, 1, 1), "New Year"))
        holidays = await sql_store.holidays_for_year(2025)

        assert [h.holiday_date for h in holidays] == [THURSDAY, date(2025, 7, 31)]
        assert holidays[1].scope == HolidayScope.LOCAL
        assert holidays[1].locality == "bilbao"
        assert holidays[0].locality is None

    async def test_add_holiday_replaces_same_date(self, sql_store):
        await sql_store.add_holiday(Holiday(THURSDAY, "Renamed"))
        holidays = await sql_store.holidays_for_year(2025)
        assert [h.name for h in holidays if h.holiday_date == THURSDAY] == ["Renamed"]

    async def test_assignment_round_trip(self, sql_store):
        assignment = await sql_store.get_assignment(TECH)
        assert assignment.hours_approver_id == LEAD
        assert assignment.locality == "bilbao"

        await sql_store.set_assignment(replace(assignment, hours_approver_id="lead-2"))
        assert (await sql_store.get_assignment(TECH)).hours_approver_id == "lead-2"
        assert await sql_store.get_assignment("nobody") is None


class TestRollups:
    async def test_full_flow_into_stored_rollup(self, sql_store, entry_service_sql):
        entry = await entry_service_sql.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        await entry_service_sql.transition(entry.entry_id, "submit", TECH, "technician")
        approved = await entry_service_sql.transition(entry.entry_id, "approve", LEAD, "team_lead")
        assert approved.amount == Decimal("90.00")

        service = RollupService(entries=sql_store, rollups=sql_store)
        rollup = await service.refresh_rollup(Period(2025, 6))
        await service.refresh_rollup(Period(2025, 6))

        stored = await sql_store.get_rollup("2025_06")
        assert stored == rollup
        assert stored.day_type_bucket(DayType.SATURDAY).amount == Decimal("90.00")


class TestStorageFailures:
    async def test_unreachable_database(self, tmp_path):
        engine = get_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/engine.db")
        store = SqlStore(create_session_factory(engine))

        with pytest.raises(StorageUnavailableError) as exc_info:
            await store.get_entry("any")

        assert exc_info.value.retryable is True
        assert exc_info.value.operation == "get_entry"
        await engine.dispose()

