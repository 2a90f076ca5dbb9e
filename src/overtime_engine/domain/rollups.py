"""KPI rollup and reporting period types."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from overtime_engine.calculators.types import DayType
from overtime_engine.exceptions import ValidationError

ZERO = Decimal("0")
CENTS = Decimal("0.01")

_PERIOD_RE = re.compile(r"^(\d{4})(?:[_-](\d{1,2}))?$")


@dataclass(frozen=True)
class Period:
    """A calendar year or a single month of it."""

    year: int
    month: int | None = None

    def __post_init__(self) -> None:
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValidationError("period", f"month {self.month} out of range")

    @classmethod
    def parse(cls, value: str) -> Period:
        """Parse ``YYYY``, ``YYYY_MM`` or ``YYYY-MM``."""
        match = _PERIOD_RE.match(value.strip())
        if match is None:
            raise ValidationError("period", f"'{value}' is not YYYY or YYYY_MM")
        month = int(match.group(2)) if match.group(2) else None
        return cls(int(match.group(1)), month)

    @property
    def key(self) -> str:
        if self.month is None:
            return f"{self.year:04d}"
        return f"{self.year:04d}_{self.month:02d}"

    @property
    def start(self) -> date:
        return date(self.year, self.month or 1, 1)

    @property
    def end(self) -> date:
        if self.month is None:
            return date(self.year, 12, 31)
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def months(self) -> list[Period]:
        if self.month is not None:
            return [self]
        return [Period(self.year, m) for m in range(1, 13)]

    def __str__(self) -> str:
        return self.key


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Average rounded to cents; 0 when there is nothing to average."""
    if denominator == 0:
        return ZERO.quantize(CENTS)
    return (numerator / denominator).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class HoursBucket:
    hours: Decimal = ZERO
    amount: Decimal = ZERO
    count: int = 0

    def add(self, hours: Decimal, amount: Decimal) -> HoursBucket:
        return HoursBucket(self.hours + hours, self.amount + amount, self.count + 1)


@dataclass(frozen=True)
class ExpenseBucket:
    amount: Decimal = ZERO
    count: int = 0
    kilometers: Decimal = ZERO

    def add(self, amount: Decimal, kilometers: Decimal = ZERO) -> ExpenseBucket:
        return ExpenseBucket(self.amount + amount, self.count + 1, self.kilometers + kilometers)


@dataclass(frozen=True)
class ContributorTotals:
    """Totals for one technician or project."""

    hours: Decimal = ZERO
    hours_amount: Decimal = ZERO
    expense_amount: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.hours_amount + self.expense_amount

    def add_hours(self, hours: Decimal, amount: Decimal) -> ContributorTotals:
        return ContributorTotals(self.hours + hours, self.hours_amount + amount, self.expense_amount)

    def add_expense(self, amount: Decimal) -> ContributorTotals:
        return ContributorTotals(self.hours, self.hours_amount, self.expense_amount + amount)


@dataclass(frozen=True)
class KPIRollup:
    """Aggregates over the approved entries of one period.

    Contains no timestamps, so recomputing over unchanged input yields an
    equal rollup.
    """

    period: str
    hours_by_day_type: dict[str, HoursBucket] = field(default_factory=dict)
    expenses_by_category: dict[str, ExpenseBucket] = field(default_factory=dict)
    by_technician: dict[str, ContributorTotals] = field(default_factory=dict)
    by_project: dict[str, ContributorTotals] = field(default_factory=dict)
    entry_count: int = 0

    # ----- totals -----

    @property
    def total_hours(self) -> Decimal:
        return sum((b.hours for b in self.hours_by_day_type.values()), ZERO)

    @property
    def hours_amount(self) -> Decimal:
        return sum((b.amount for b in self.hours_by_day_type.values()), ZERO)

    @property
    def expense_amount(self) -> Decimal:
        return sum((b.amount for b in self.expenses_by_category.values()), ZERO)

    @property
    def grand_total(self) -> Decimal:
        return self.hours_amount + self.expense_amount

    @property
    def total_kilometers(self) -> Decimal:
        return sum((b.kilometers for b in self.expenses_by_category.values()), ZERO)

    def day_type_bucket(self, day_type: DayType) -> HoursBucket:
        return self.hours_by_day_type.get(day_type.value, HoursBucket())

    def category_bucket(self, category: str) -> ExpenseBucket:
        return self.expenses_by_category.get(category, ExpenseBucket())

    # ----- derived KPIs -----

    @property
    def average_cost_per_hour(self) -> Decimal:
        return _ratio(self.hours_amount, self.total_hours)

    def average_cost_per_hour_for(self, day_type: DayType) -> Decimal:
        bucket = self.day_type_bucket(day_type)
        return _ratio(bucket.amount, bucket.hours)

    @property
    def holiday_hours_share(self) -> Decimal:
        """Percentage of hours worked on holidays."""
        holiday_hours = self.day_type_bucket(DayType.HOLIDAY).hours
        return _ratio(holiday_hours * 100, self.total_hours)

    @property
    def average_per_diem(self) -> Decimal:
        bucket = self.category_bucket("per_diem")
        return _ratio(bucket.amount, Decimal(bucket.count))

    @property
    def average_cost_per_technician(self) -> Decimal:
        return _ratio(self.grand_total, Decimal(len(self.by_technician)))

    @property
    def average_cost_per_project(self) -> Decimal:
        return _ratio(self.grand_total, Decimal(len(self.by_project)))

    def top_technicians(self, limit: int = 10, by: str = "hours") -> list[tuple[str, ContributorTotals]]:
        """Technicians ranked by ``hours``, ``expense_amount`` or ``total``."""
        if by not in ("hours", "expense_amount", "total"):
            raise ValidationError("by", f"cannot rank by '{by}'")
        ranked = sorted(
            self.by_technician.items(),
            key=lambda item: (-getattr(item[1], by), item[0]),
        )
        return ranked[:limit]

    # ----- serialization -----

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "entry_count": self.entry_count,
            "hours_by_day_type": {
                k: {"hours": str(b.hours), "amount": str(b.amount), "count": b.count}
                for k, b in self.hours_by_day_type.items()
            },
            "expenses_by_category": {
                k: {"amount": str(b.amount), "count": b.count, "kilometers": str(b.kilometers)}
                for k, b in self.expenses_by_category.items()
            },
            "by_technician": {k: _totals_to_dict(t) for k, t in self.by_technician.items()},
            "by_project": {k: _totals_to_dict(t) for k, t in self.by_project.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KPIRollup:
        return cls(
            period=data["period"],
            entry_count=int(data.get("entry_count", 0)),
            hours_by_day_type={
                k: HoursBucket(Decimal(v["hours"]), Decimal(v["amount"]), int(v["count"]))
                for k, v in data.get("hours_by_day_type", {}).items()
            },
            expenses_by_category={
                k: ExpenseBucket(Decimal(v["amount"]), int(v["count"]), Decimal(v["kilometers"]))
                for k, v in data.get("expenses_by_category", {}).items()
            },
            by_technician={k: _totals_from_dict(v) for k, v in data.get("by_technician", {}).items()},
            by_project={k: _totals_from_dict(v) for k, v in data.get("by_project", {}).items()},
        )


def _totals_to_dict(totals: ContributorTotals) -> dict[str, str]:
    return {
        "hours": str(totals.hours),
        "hours_amount": str(totals.hours_amount),
        "expense_amount": str(totals.expense_amount),
    }


def _totals_from_dict(data: dict[str, str]) -> ContributorTotals:
    return ContributorTotals(
        hours=Decimal(data["hours"]),
        hours_amount=Decimal(data["hours_amount"]),
        expense_amount=Decimal(data["expense_amount"]),
    )
