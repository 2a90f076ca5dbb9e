"""Tests for KPI rollups and period comparison."""

from datetime import date
from decimal import Decimal

import pytest

from overtime_engine.calculators.aggregation import (
    NO_BASELINE,
    build_rollup,
    compare_rollups,
    format_variation,
    percent_variation,
)
from overtime_engine.calculators.types import DayType, RateCode
from overtime_engine.domain.entries import ExpenseEntry, TimeEntry
from overtime_engine.domain.expenses import MileageDetails, PerDiemDetails, PerDiemType, VehicleType
from overtime_engine.domain.rollups import KPIRollup, Period
from overtime_engine.exceptions import ValidationError
from overtime_engine.services.state_machine import EntryState

from tests.conftest import LEAD, OTHER_TECH, SATURDAY, TECH, THURSDAY, TUESDAY


def time_entry(entry_id, state, entry_date=SATURDAY, hours="5", amount="90.00",
               day_type=DayType.SATURDAY, owner=TECH, project="P-1"):
    return TimeEntry(
        entry_id=entry_id,
        owner_id=owner,
        entry_date=entry_date,
        start_time="10:00",
        end_time="15:00",
        hours=Decimal(hours),
        day_type=day_type,
        rate_code=RateCode.OVERTIME_SATURDAY,
        project_id=project,
        amount=Decimal(amount),
        state=state,
    )


def mileage_entry(entry_id, state, km="600", amount="156.00", owner=TECH):
    return ExpenseEntry(
        entry_id=entry_id,
        owner_id=owner,
        entry_date=TUESDAY,
        details=MileageDetails(Decimal(km), VehicleType.OWN),
        amount=Decimal(amount),
        state=state,
    )


class TestPeriod:
    def test_parse_forms(self):
        assert Period.parse("2025") == Period(2025)
        assert Period.parse("2025_06") == Period(2025, 6)
        assert Period.parse("2025-6") == Period(2025, 6)

    def test_key_and_bounds(self):
        june = Period(2025, 6)
        assert june.key == "2025_06"
        assert june.start == date(2025, 6, 1)
        assert june.end == date(2025, 6, 30)
        assert Period(2024, 2).end == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["25", "2025_13", "2025/06", "june"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            Period.parse(value)


class TestBuildRollup:
    """Only approved entries inside the period count, each exactly once."""

    def test_excludes_every_other_state(self):
        entries = [
            time_entry(f"t-{state.value}", state, amount="100.00")
            for state in EntryState
        ]
        rollup = build_rollup(Period(2025, 6), entries)

        assert rollup.entry_count == 1
        assert rollup.hours_amount == Decimal("100.00")
        assert rollup.day_type_bucket(DayType.SATURDAY).count == 1

    def test_excludes_dates_outside_period(self):
        entries = [
            time_entry("june", EntryState.APPROVED),
            time_entry("july", EntryState.APPROVED, entry_date=date(2025, 7, 5)),
        ]
        assert build_rollup(Period(2025, 6), entries).entry_count == 1
        assert build_rollup(Period(2025), entries).entry_count == 2

    def test_groups(self):
        entries = [
            time_entry("a", EntryState.APPROVED),
            time_entry(
                "b", EntryState.APPROVED, entry_date=THURSDAY, hours="3", amount="75.00",
                day_type=DayType.HOLIDAY, owner=OTHER_TECH, project=None,
            ),
            mileage_entry("c", EntryState.APPROVED),
            ExpenseEntry(
                entry_id="d",
                owner_id=OTHER_TECH,
                entry_date=TUESDAY,
                details=PerDiemDetails(PerDiemType.FULL),
                project_id="P-2",
                amount=Decimal("60.00"),
                state=EntryState.APPROVED,
            ),
        ]
        rollup = build_rollup(Period(2025, 6), entries)

        assert rollup.hours_by_day_type["saturday"].hours == Decimal("5")
        assert rollup.hours_by_day_type["holiday"].amount == Decimal("75.00")
        assert rollup.hours_by_day_type["workday"].count == 0
        assert rollup.expenses_by_category["mileage"].kilometers == Decimal("600")
        assert rollup.total_hours == Decimal("8")
        assert rollup.hours_amount == Decimal("165.00")
        assert rollup.expense_amount == Decimal("216.00")
        assert rollup.grand_total == Decimal("381.00")
        assert rollup.by_technician[TECH].total == Decimal("246.00")
        assert rollup.by_technician[OTHER_TECH].total == Decimal("135.00")
        assert set(rollup.by_project) == {"P-1", "P-2"}

    def test_derived_kpis(self):
        entries = [
            time_entry("a", EntryState.APPROVED, hours="5", amount="90.00"),
            time_entry(
                "b", EntryState.APPROVED, hours="5", amount="125.00",
                day_type=DayType.HOLIDAY, owner=OTHER_TECH,
            ),
        ]
        rollup = build_rollup(Period(2025, 6), entries)

        assert rollup.average_cost_per_hour == Decimal("21.50")
        assert rollup.average_cost_per_hour_for(DayType.HOLIDAY) == Decimal("25.00")
        assert rollup.holiday_hours_share == Decimal("50.00")
        assert rollup.average_per_diem == Decimal("0.00")
        assert rollup.average_cost_per_technician == Decimal("107.50")
        assert [tech for tech, _ in rollup.top_technicians(1, by="total")] == [OTHER_TECH]

    def test_idempotent(self):
        entries = [time_entry("a", EntryState.APPROVED), mileage_entry("b", EntryState.APPROVED)]
        assert build_rollup(Period(2025, 6), entries) == build_rollup(Period(2025, 6), entries)

    def test_dict_round_trip(self):
        rollup = build_rollup(Period(2025, 6), [time_entry("a", EntryState.APPROVED)])
        assert KPIRollup.from_dict(rollup.to_dict()) == rollup

    def test_empty_period(self):
        rollup = build_rollup(Period(2025, 6), [])
        assert rollup.entry_count == 0
        assert rollup.grand_total == Decimal("0")
        assert rollup.average_cost_per_hour == Decimal("0.00")


class TestVariation:
    """One policy for every variation."""

    def test_increase_and_decrease(self):
        assert percent_variation(Decimal("150"), Decimal("100")) == Decimal("50.00")
        assert percent_variation(Decimal("50"), Decimal("200")) == Decimal("-75.00")

    def test_zero_baseline(self):
        assert percent_variation(Decimal("0"), Decimal("0")) == Decimal("0")
        assert percent_variation(Decimal("10"), Decimal("0")) is NO_BASELINE

    def test_compare_rollups(self):
        current = build_rollup(Period(2025, 6), [time_entry("a", EntryState.APPROVED)])
        baseline = build_rollup(Period(2025, 5), [])

        variations = compare_rollups(current, baseline)

        assert variations["hours.saturday"] is NO_BASELINE
        assert variations["hours.workday"] == Decimal("0")
        assert format_variation(variations["grand_total"]) == "no_baseline"

    def test_compare_includes_one_sided_categories(self):
        current = build_rollup(Period(2025, 6), [mileage_entry("a", EntryState.APPROVED)])
        baseline = build_rollup(
            Period(2025, 6), [mileage_entry("b", EntryState.APPROVED, km="300", amount="78.00")]
        )
        variations = compare_rollups(current, baseline)
        assert variations["expenses.mileage"] == Decimal("100.00")


class TestRollupService:
    """Test stored rollups through the service."""

    @pytest.mark.asyncio
    async def test_scenario_saturday_into_monthly_rollup(self, entry_service, rollup_service):
        entry = await entry_service.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        await entry_service.transition(entry.entry_id, "submit", TECH, "technician")

        pending = await rollup_service.refresh_rollup("2025_06")
        assert pending.entry_count == 0

        await entry_service.transition(entry.entry_id, "approve", LEAD, "team_lead")
        rollup = await rollup_service.refresh_rollup("2025_06")

        bucket = rollup.day_type_bucket(DayType.SATURDAY)
        assert bucket.hours == Decimal("5")
        assert bucket.amount == Decimal("90.00")
        assert await rollup_service.get_rollup("2025_06") == rollup

    @pytest.mark.asyncio
    async def test_refresh_replaces(self, entry_service, rollup_service):
        for _ in range(2):
            entry = await entry_service.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
            await entry_service.transition(entry.entry_id, "submit", TECH, "technician")
            await entry_service.transition(entry.entry_id, "approve", LEAD, "team_lead")
            await rollup_service.refresh_rollup(Period(2025, 6))

        again = await rollup_service.refresh_rollup(Period(2025, 6))
        assert again.entry_count == 2
        assert again.hours_amount == Decimal("180.00")

    @pytest.mark.asyncio
    async def test_monthly_evolution(self, entry_service, rollup_service):
        entry = await entry_service.create_expense_entry(
            TECH, TUESDAY, {"category": "per_diem", "allowance": "full"}
        )
        await entry_service.transition(entry.entry_id, "submit", TECH, "technician")
        await entry_service.transition(entry.entry_id, "approve", "office-1", "office_supervisor")

        months = await rollup_service.monthly_evolution(2025)

        assert [m.period for m in months][:2] == ["2025_01", "2025_02"]
        assert len(months) == 12
        assert months[5].expense_amount == Decimal("60.00")
        assert months[4].grand_total == Decimal("0")

    @pytest.mark.asyncio
    async def test_compare_periods(self, rollup_service):
        variations = await rollup_service.compare("2025_06", "2025_05")
        assert variations["grand_total"] == Decimal("0")

    @pytest.mark.asyncio
    async def test_get_rollup_includes_later_approvals(self, entry_service, rollup_service):
        """A period read before an approval still reflects the approval when read again."""
        before = await rollup_service.get_rollup("2025_06")
        assert before.entry_count == 0

        entry = await entry_service.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        await entry_service.transition(entry.entry_id, "submit", TECH, "technician")
        await entry_service.transition(entry.entry_id, "approve", LEAD, "team_lead")

        after = await rollup_service.get_rollup("2025_06")
        assert after.entry_count == 1
        assert after.day_type_bucket(DayType.SATURDAY).amount == Decimal("90.00")
        assert await rollup_service.stored_rollup("2025_06") == after

    @pytest.mark.asyncio
    async def test_compare_uses_current_totals(self, entry_service, rollup_service):
        await rollup_service.compare("2025_06", "2025_05")

        entry = await entry_service.create_time_entry(TECH, SATURDAY, "10:00", "15:00")
        await entry_service.transition(entry.entry_id, "submit", TECH, "technician")
        await entry_service.transition(entry.entry_id, "approve", LEAD, "team_lead")

        variations = await rollup_service.compare("2025_06", "2025_05")
        assert variations["grand_total"] == NO_BASELINE
