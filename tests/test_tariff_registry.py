"""Tests for tariff resolution, overrides and year cloning."""

from datetime import date
from decimal import Decimal

import pytest

from overtime_engine.calculators.tariff_registry import TariffRegistry
from overtime_engine.calculators.types import DEFAULT_TARIFFS, RateCode, TariffSource, TariffUnit
from overtime_engine.exceptions import (
    PermissionDeniedError,
    TariffLockedError,
    TariffNotFoundError,
    ValidationError,
)
from overtime_engine.store.memory import InMemoryStore

from tests.conftest import MANAGER, TECH, default_rates

pytestmark = pytest.mark.asyncio


class CountingStore(InMemoryStore):
    """Counts tariff lookups to observe caching."""

    def __init__(self) -> None:
        super().__init__()
        self.lookups = 0

    async def get_tariff(self, year, rate_code, user_id=None):
        self.lookups += 1
        return await super().get_tariff(year, rate_code, user_id)


class TestResolve:
    """Test resolution priority and failure modes."""

    async def test_general_table(self, store, clock):
        registry = TariffRegistry(store, clock)
        snapshot = await registry.resolve(RateCode.OVERTIME_SATURDAY, date(2025, 6, 14))

        assert snapshot.amount == Decimal("18.00")
        assert snapshot.unit == TariffUnit.HOUR
        assert snapshot.year == 2025
        assert snapshot.source == TariffSource.TABLE

    async def test_override_wins_for_its_user_only(self, store, clock):
        registry = TariffRegistry(store, clock)
        await registry.set_tariff(2025, RateCode.OVERTIME_WORKDAY, Decimal("17.50"), user_id=TECH)

        mine = await registry.resolve(RateCode.OVERTIME_WORKDAY, date(2025, 3, 3), TECH)
        theirs = await registry.resolve(RateCode.OVERTIME_WORKDAY, date(2025, 3, 3), "tech-9")

        assert mine.amount == Decimal("17.50")
        assert mine.source == TariffSource.OVERRIDE
        assert theirs.amount == Decimal("15.00")

    async def test_missing_year_raises(self, store, clock):
        registry = TariffRegistry(store, clock)
        with pytest.raises(TariffNotFoundError) as exc_info:
            await registry.resolve(RateCode.OVERTIME_WORKDAY, date(2024, 12, 31))

        assert exc_info.value.rate_code == "overtime_workday"
        assert exc_info.value.year == 2024

    async def test_zero_fallback_policy(self, store, clock):
        registry = TariffRegistry(store, clock, zero_fallback=True)
        snapshot = await registry.resolve(RateCode.OVERTIME_WORKDAY, date(2024, 12, 31))

        assert snapshot.amount == Decimal("0")
        assert snapshot.source == TariffSource.FALLBACK

    async def test_constant_for_whole_year(self, store, clock):
        registry = TariffRegistry(store, clock)
        january = await registry.resolve(RateCode.PER_DIEM_FULL, date(2025, 1, 1))
        december = await registry.resolve(RateCode.PER_DIEM_FULL, date(2025, 12, 31))
        assert january == december

    async def test_cached_per_request(self, clock):
        store = CountingStore()
        await store.insert_year_if_empty(2025, default_rates(2025))
        registry = TariffRegistry(store, clock)

        for month in range(1, 13):
            await registry.resolve(RateCode.KM_OWN_VEHICLE, date(2025, month, 1))

        # One table lookup for the whole year
        assert store.lookups == 1

        fresh = TariffRegistry(store, clock)
        await fresh.resolve(RateCode.KM_OWN_VEHICLE, date(2025, 1, 1))
        assert store.lookups == 2


class TestWrites:
    """Test year locking on writes."""

    async def test_current_year_writable(self, store, clock):
        registry = TariffRegistry(store, clock)
        rate = await registry.set_tariff(2025, RateCode.OVERTIME_HOLIDAY, Decimal("27.00"))

        assert rate.unit == TariffUnit.HOUR
        resolved = await registry.resolve(RateCode.OVERTIME_HOLIDAY, date(2025, 8, 15))
        assert resolved.amount == Decimal("27.00")

    async def test_past_year_locked(self, store, clock):
        registry = TariffRegistry(store, clock)
        with pytest.raises(TariffLockedError) as exc_info:
            await registry.set_tariff(2024, RateCode.OVERTIME_HOLIDAY, Decimal("27.00"))

        assert exc_info.value.year == 2024
        assert exc_info.value.current_year == 2025

    async def test_negative_amount_rejected(self, store, clock):
        registry = TariffRegistry(store, clock)
        with pytest.raises(ValidationError):
            await registry.set_tariff(2025, RateCode.OVERTIME_HOLIDAY, Decimal("-1"))

    async def test_seed_defaults_once(self, clock):
        store = InMemoryStore()
        registry = TariffRegistry(store, clock)

        first = await registry.seed_defaults(2026)
        second = await registry.seed_defaults(2026)

        assert first.cloned is True
        assert first.rows == len(DEFAULT_TARIFFS)
        assert second.cloned is False


class TestCloneYear:
    """Test clone idempotence."""

    async def test_clone_copies_every_rate(self, store, clock):
        registry = TariffRegistry(store, clock)
        result = await registry.clone_year(2025, 2026, actor_id=MANAGER)

        assert result.cloned is True
        assert result.rows == len(DEFAULT_TARIFFS)

        source = {r.rate_code: r.amount for r in await registry.table_for_year(2025)}
        dest = {r.rate_code: r.amount for r in await registry.table_for_year(2026)}
        assert dest == source

    async def test_second_clone_is_noop(self, store, clock):
        registry = TariffRegistry(store, clock)
        await registry.clone_year(2025, 2026)
        await registry.set_tariff(2026, RateCode.OVERTIME_WORKDAY, Decimal("16.00"))

        again = await registry.clone_year(2025, 2026)

        assert again.cloned is False
        resolved = await TariffRegistry(store, clock).resolve(
            RateCode.OVERTIME_WORKDAY, date(2026, 1, 2)
        )
        assert resolved.amount == Decimal("16.00")

    async def test_clone_into_past_year_locked(self, store, clock):
        registry = TariffRegistry(store, clock)
        with pytest.raises(TariffLockedError):
            await registry.clone_year(2025, 2024)

    async def test_clone_from_empty_year(self, store, clock):
        registry = TariffRegistry(store, clock)
        with pytest.raises(TariffNotFoundError):
            await registry.clone_year(2030, 2031)

    async def test_clone_same_year(self, store, clock):
        registry = TariffRegistry(store, clock)
        with pytest.raises(ValidationError):
            await registry.clone_year(2025, 2025)

    async def test_overrides_are_not_cloned(self, store, clock):
        registry = TariffRegistry(store, clock)
        await registry.set_tariff(2025, RateCode.OVERTIME_WORKDAY, Decimal("30"), user_id=TECH)
        await registry.clone_year(2025, 2026)

        assert await store.get_tariff(2026, RateCode.OVERTIME_WORKDAY, TECH) is None


class TestTariffService:
    """Test role checks on tariff administration."""

    async def test_manager_can_clone(self, tariff_service):
        result = await tariff_service.clone_tariff_year(2025, 2026, MANAGER, "management")
        assert result.cloned is True

    async def test_technician_cannot_clone(self, tariff_service):
        with pytest.raises(PermissionDeniedError):
            await tariff_service.clone_tariff_year(2025, 2026, TECH, "technician")

    async def test_set_override(self, tariff_service):
        await tariff_service.set_override(
            2025, RateCode.PER_DIEM_FULL, Decimal("70"), TECH, MANAGER, "admin"
        )
        snapshot = await tariff_service.resolve(RateCode.PER_DIEM_FULL, date(2025, 5, 5), TECH)
        assert snapshot.amount == Decimal("70")
