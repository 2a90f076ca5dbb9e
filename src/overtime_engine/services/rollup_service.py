"""Rollup service - KPI aggregation over stored entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from overtime_engine.calculators.aggregation import Variation, build_rollup, compare_rollups
from overtime_engine.domain.rollups import KPIRollup, Period
from overtime_engine.services.state_machine import EntryState

if TYPE_CHECKING:
    from overtime_engine.store.base import EntryStore, RollupStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlyTotals:
    """One point of a year's monthly evolution."""

    period: str
    hours_amount: Decimal
    expense_amount: Decimal
    grand_total: Decimal


class RollupService:
    """Computes, stores and compares KPI rollups.

    A refresh reads a snapshot of the period's approved entries and
    replaces the stored rollup in one atomic write; rollups are never
    patched incrementally.
    """

    def __init__(self, entries: EntryStore, rollups: RollupStore):
        self.entries = entries
        self.rollups = rollups

    async def compute(self, period: Period) -> KPIRollup:
        approved = await self.entries.find_entries(
            state=EntryState.APPROVED, start=period.start, end=period.end
        )
        return build_rollup(period, approved)

    async def refresh_rollup(self, period: Period | str) -> KPIRollup:
        """Recompute the rollup for ``period`` and replace the stored one."""
        period = _as_period(period)
        rollup = await self.compute(period)
        await self.rollups.replace_rollup(rollup)
        logger.info(
            "Rollup %s refreshed: %d entries, total %s",
            rollup.period,
            rollup.entry_count,
            rollup.grand_total,
        )
        return rollup

    async def get_rollup(self, period: Period | str) -> KPIRollup:
        """Current rollup of ``period``.

        Recomputed from the approved entries and stored on every read, so an
        approval made after an earlier read is always included.
        """
        return await self.refresh_rollup(period)

    async def stored_rollup(self, period: Period | str) -> KPIRollup | None:
        """Last rollup written for ``period``, without recomputing."""
        return await self.rollups.get_rollup(_as_period(period).key)

    async def compare(
        self,
        current: Period | str,
        baseline: Period | str,
    ) -> dict[str, Variation]:
        current_rollup = await self.get_rollup(current)
        baseline_rollup = await self.get_rollup(baseline)
        return compare_rollups(current_rollup, baseline_rollup)

    async def monthly_evolution(self, year: int) -> list[MonthlyTotals]:
        """Totals for each month of ``year`` from a single snapshot read."""
        year_period = Period(year)
        approved = await self.entries.find_entries(
            state=EntryState.APPROVED, start=year_period.start, end=year_period.end
        )

        evolution = []
        for month in year_period.months():
            rollup = build_rollup(month, approved)
            evolution.append(
                MonthlyTotals(
                    period=month.key,
                    hours_amount=rollup.hours_amount,
                    expense_amount=rollup.expense_amount,
                    grand_total=rollup.grand_total,
                )
            )
        return evolution


def _as_period(period: Period | str) -> Period:
    return period if isinstance(period, Period) else Period.parse(period)
