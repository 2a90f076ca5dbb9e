"""KPI aggregation over approved entries and period-over-period variation."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from overtime_engine.calculators.types import DayType
from overtime_engine.domain.entries import Entry, ExpenseEntry, TimeEntry
from overtime_engine.domain.expenses import MileageDetails
from overtime_engine.domain.rollups import (
    ZERO,
    ContributorTotals,
    ExpenseBucket,
    HoursBucket,
    KPIRollup,
    Period,
)
from overtime_engine.services.state_machine import EntryState

PERCENT_PRECISION = Decimal("0.01")


class VariationSentinel(str, Enum):
    """Marker for a variation with a zero baseline and a non-zero current value."""

    NO_BASELINE = "no_baseline"


NO_BASELINE = VariationSentinel.NO_BASELINE

Variation = Decimal | VariationSentinel


def build_rollup(period: Period, entries: Iterable[Entry]) -> KPIRollup:
    """Aggregate the entries of ``period`` whose state is exactly ``approved``.

    Every other state is excluded unconditionally. The result depends only
    on the input snapshot; group keys are emitted in sorted order.
    """
    hours_by_day_type: dict[str, HoursBucket] = {dt.value: HoursBucket() for dt in DayType}
    expenses_by_category: dict[str, ExpenseBucket] = {}
    by_technician: dict[str, ContributorTotals] = {}
    by_project: dict[str, ContributorTotals] = {}
    entry_count = 0

    for entry in entries:
        if entry.state != EntryState.APPROVED or not period.contains(entry.entry_date):
            continue

        entry_count += 1
        amount = entry.amount if entry.amount is not None else ZERO

        if isinstance(entry, TimeEntry):
            key = entry.day_type.value
            hours_by_day_type[key] = hours_by_day_type[key].add(entry.hours, amount)
            by_technician[entry.owner_id] = by_technician.get(
                entry.owner_id, ContributorTotals()
            ).add_hours(entry.hours, amount)
            if entry.project_id:
                by_project[entry.project_id] = by_project.get(
                    entry.project_id, ContributorTotals()
                ).add_hours(entry.hours, amount)

        elif isinstance(entry, ExpenseEntry):
            key = entry.category.value
            kilometers = (
                entry.details.kilometers if isinstance(entry.details, MileageDetails) else ZERO
            )
            expenses_by_category[key] = expenses_by_category.get(
                key, ExpenseBucket()
            ).add(amount, kilometers)
            by_technician[entry.owner_id] = by_technician.get(
                entry.owner_id, ContributorTotals()
            ).add_expense(amount)
            if entry.project_id:
                by_project[entry.project_id] = by_project.get(
                    entry.project_id, ContributorTotals()
                ).add_expense(amount)

    return KPIRollup(
        period=period.key,
        hours_by_day_type=dict(sorted(hours_by_day_type.items())),
        expenses_by_category=dict(sorted(expenses_by_category.items())),
        by_technician=dict(sorted(by_technician.items())),
        by_project=dict(sorted(by_project.items())),
        entry_count=entry_count,
    )


def percent_variation(current: Decimal, baseline: Decimal) -> Variation:
    """Percentage change from ``baseline`` to ``current``.

    Zero baseline: 0 when current is also zero, NO_BASELINE otherwise.
    """
    if baseline == 0:
        if current == 0:
            return ZERO.quantize(PERCENT_PRECISION)
        return NO_BASELINE
    change = (current - baseline) / baseline * 100
    return change.quantize(PERCENT_PRECISION, rounding=ROUND_HALF_UP)


def rollup_metrics(rollup: KPIRollup) -> dict[str, Decimal]:
    """Flat metric map used for comparisons."""
    metrics: dict[str, Decimal] = {
        "total_hours": rollup.total_hours,
        "hours_amount": rollup.hours_amount,
        "expense_amount": rollup.expense_amount,
        "grand_total": rollup.grand_total,
        "total_kilometers": rollup.total_kilometers,
        "entry_count": Decimal(rollup.entry_count),
    }
    for day_type in DayType:
        bucket = rollup.day_type_bucket(day_type)
        metrics[f"hours.{day_type.value}"] = bucket.hours
        metrics[f"hours_amount.{day_type.value}"] = bucket.amount
    for category, bucket in rollup.expenses_by_category.items():
        metrics[f"expenses.{category}"] = bucket.amount
    return metrics


def compare_rollups(current: KPIRollup, baseline: KPIRollup) -> dict[str, Variation]:
    """Percentage variation per metric of ``current`` against ``baseline``."""
    current_metrics = rollup_metrics(current)
    baseline_metrics = rollup_metrics(baseline)

    return {
        name: percent_variation(
            current_metrics.get(name, ZERO),
            baseline_metrics.get(name, ZERO),
        )
        for name in sorted(current_metrics.keys() | baseline_metrics.keys())
    }


def format_variation(variation: Variation) -> str:
    """Decimal string, or the sentinel's value."""
    if isinstance(variation, VariationSentinel):
        return variation.value
    return str(variation)
