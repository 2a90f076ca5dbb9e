"""Tariff administration guarded by role."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from overtime_engine.calculators.day_classifier import Holiday
from overtime_engine.calculators.tariff_registry import CloneResult, TariffRegistry
from overtime_engine.calculators.types import RateCode, TariffRate, TariffSnapshot, TariffUnit
from overtime_engine.exceptions import PermissionDeniedError
from overtime_engine.services.permissions import TARIFF_ADMIN_ROLES, parse_role

if TYPE_CHECKING:
    from overtime_engine.clock import Clock
    from overtime_engine.store.base import HolidayStore, TariffStore

logger = logging.getLogger(__name__)


class TariffService:
    """Administrative operations on tariff tables and the holiday calendar.

    Writes require a role in ``TARIFF_ADMIN_ROLES``; reads are open.
    """

    def __init__(
        self,
        tariffs: TariffStore,
        holidays: HolidayStore,
        clock: Clock,
        zero_fallback: bool = False,
    ):
        self.tariffs = tariffs
        self.holidays = holidays
        self.clock = clock
        self.zero_fallback = zero_fallback

    def registry(self) -> TariffRegistry:
        return TariffRegistry(self.tariffs, self.clock, self.zero_fallback)

    async def resolve(
        self,
        rate_code: RateCode,
        on_date: date,
        user_id: str | None = None,
    ) -> TariffSnapshot:
        return await self.registry().resolve(rate_code, on_date, user_id)

    async def table_for_year(self, year: int) -> list[TariffRate]:
        return await self.registry().table_for_year(year)

    async def set_tariff(
        self,
        year: int,
        rate_code: RateCode,
        amount: Decimal,
        actor_id: str,
        actor_role: str,
        unit: TariffUnit | None = None,
    ) -> TariffRate:
        self._authorize(f"tariffs {year}", "set tariff", actor_id, actor_role)
        return await self.registry().set_tariff(year, rate_code, amount, unit)

    async def set_override(
        self,
        year: int,
        rate_code: RateCode,
        amount: Decimal,
        user_id: str,
        actor_id: str,
        actor_role: str,
        unit: TariffUnit | None = None,
    ) -> TariffRate:
        """Write a per-user rate that wins over the general table."""
        self._authorize(f"tariffs {year}", "set override", actor_id, actor_role)
        return await self.registry().set_tariff(year, rate_code, amount, unit, user_id)

    async def clone_tariff_year(
        self,
        source_year: int,
        dest_year: int,
        actor_id: str,
        actor_role: str,
    ) -> CloneResult:
        """Clone a year's table; a repeat call returns ``cloned=False``."""
        self._authorize(f"tariffs {dest_year}", "clone", actor_id, actor_role)
        return await self.registry().clone_year(source_year, dest_year, actor_id)

    async def add_holiday(self, holiday: Holiday, actor_id: str, actor_role: str) -> Holiday:
        self._authorize("holiday calendar", "add holiday", actor_id, actor_role)
        await self.holidays.add_holiday(holiday)
        logger.info(
            "Holiday %s (%s, %s) added by %s",
            holiday.holiday_date.isoformat(),
            holiday.name,
            holiday.scope.value,
            actor_id,
        )
        return holiday

    async def holidays_for_year(self, year: int) -> list[Holiday]:
        holidays = await self.holidays.holidays_for_year(year)
        return sorted(holidays, key=lambda h: (h.holiday_date, h.locality or ""))

    def _authorize(self, target: str, action: str, actor_id: str, actor_role: str) -> None:
        if parse_role(actor_role) not in TARIFF_ADMIN_ROLES:
            raise PermissionDeniedError(
                target, action, actor_id, f"role '{actor_role}' cannot administer tariffs"
            )
