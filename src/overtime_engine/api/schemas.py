"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from overtime_engine.calculators.day_classifier import Holiday, HolidayScope
from overtime_engine.calculators.tariff_registry import CloneResult
from overtime_engine.calculators.types import RateCode, TariffRate, TariffSnapshot, TariffUnit
from overtime_engine.domain.entries import AuditEntry, Entry, TimeEntry
from overtime_engine.domain.expenses import details_to_dict
from overtime_engine.domain.rollups import ContributorTotals, KPIRollup
from overtime_engine.services.state_machine import EntryStateMachine


class ErrorResponse(BaseModel):
    """Error body returned for every engine error."""

    detail: str
    code: str


# ============================================================================
# Entry schemas
# ============================================================================


class TimeEntryCreate(BaseModel):
    """Schema for creating a time entry."""

    entry_date: date
    start_time: str = Field(examples=["18:00"])
    end_time: str = Field(examples=["21:30"])
    project_id: str | None = None
    description: str | None = None


class TimeEntryUpdate(BaseModel):
    """Fields omitted from the body are left unchanged."""

    entry_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    project_id: str | None = None
    description: str | None = None


class ExpenseEntryCreate(BaseModel):
    """Schema for creating an expense entry.

    ``details`` is tagged by ``category``, e.g.
    ``{"category": "mileage", "kilometers": "120", "vehicle": "own"}``.
    """

    entry_date: date
    details: dict[str, Any]
    project_id: str | None = None
    description: str | None = None


class ExpenseEntryUpdate(BaseModel):
    entry_date: date | None = None
    details: dict[str, Any] | None = None
    project_id: str | None = None
    description: str | None = None


class TransitionRequest(BaseModel):
    """Schema for a lifecycle action."""

    action: str = Field(examples=["submit", "approve", "reject", "return", "resubmit"])
    comment: str | None = None


class TariffSnapshotResponse(BaseModel):
    rate_code: str
    amount: Decimal
    unit: str
    year: int
    source: str

    @classmethod
    def from_snapshot(cls, snapshot: TariffSnapshot) -> "TariffSnapshotResponse":
        return cls(
            rate_code=snapshot.rate_code.value,
            amount=snapshot.amount,
            unit=snapshot.unit.value,
            year=snapshot.year,
            source=snapshot.source.value,
        )


class AuditEntryResponse(BaseModel):
    timestamp: datetime
    actor_id: str
    actor_role: str
    action: str
    from_state: str
    to_state: str
    comment: str | None = None

    @classmethod
    def from_audit(cls, audit: AuditEntry) -> "AuditEntryResponse":
        return cls(
            timestamp=audit.timestamp,
            actor_id=audit.actor_id,
            actor_role=audit.actor_role,
            action=audit.action.value,
            from_state=audit.from_state.value,
            to_state=audit.to_state.value,
            comment=audit.comment,
        )


class EntryResponse(BaseModel):
    """Schema for a time or expense entry."""

    entry_id: str
    kind: str
    owner_id: str
    entry_date: date
    state: str
    version: int
    project_id: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    tariff: TariffSnapshotResponse | None = None
    history: list[AuditEntryResponse] = Field(default_factory=list)
    next_actions: list[str] = Field(default_factory=list)

    # Time entries
    start_time: str | None = None
    end_time: str | None = None
    hours: Decimal | None = None
    day_type: str | None = None
    rate_code: str | None = None

    # Expense entries
    category: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        data: dict[str, Any] = {
            "entry_id": entry.entry_id,
            "kind": entry.kind.value,
            "owner_id": entry.owner_id,
            "entry_date": entry.entry_date,
            "state": entry.state.value,
            "version": entry.version,
            "project_id": entry.project_id,
            "description": entry.description,
            "amount": entry.amount,
            "tariff": TariffSnapshotResponse.from_snapshot(entry.tariff) if entry.tariff else None,
            "history": [AuditEntryResponse.from_audit(a) for a in entry.history],
            "next_actions": [a.value for a in EntryStateMachine.get_next_actions(entry.state)],
        }
        if isinstance(entry, TimeEntry):
            data.update(
                start_time=entry.start_time,
                end_time=entry.end_time,
                hours=entry.hours,
                day_type=entry.day_type.value,
                rate_code=entry.rate_code.value,
            )
        else:
            data.update(category=entry.category.value, details=details_to_dict(entry.details))
        return cls(**data)


class EntryListResponse(BaseModel):
    items: list[EntryResponse]
    total: int


# ============================================================================
# Tariff schemas
# ============================================================================


class TariffWrite(BaseModel):
    """Schema for setting a tariff amount."""

    amount: Decimal = Field(ge=0)
    unit: TariffUnit | None = None


class TariffResponse(BaseModel):
    year: int
    rate_code: RateCode
    amount: Decimal
    unit: TariffUnit
    user_id: str | None = None

    @classmethod
    def from_rate(cls, rate: TariffRate) -> "TariffResponse":
        return cls(
            year=rate.year,
            rate_code=rate.rate_code,
            amount=rate.amount,
            unit=rate.unit,
            user_id=rate.user_id,
        )


class TariffTableResponse(BaseModel):
    year: int
    rates: list[TariffResponse]


class CloneRequest(BaseModel):
    source_year: int
    dest_year: int


class CloneResponse(BaseModel):
    source_year: int
    dest_year: int
    cloned: bool
    rows: int

    @classmethod
    def from_result(cls, result: CloneResult) -> "CloneResponse":
        return cls(
            source_year=result.source_year,
            dest_year=result.dest_year,
            cloned=result.cloned,
            rows=result.rows,
        )


# ============================================================================
# Holiday schemas
# ============================================================================


class HolidaySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    holiday_date: date
    name: str
    scope: HolidayScope = HolidayScope.NATIONAL
    locality: str | None = None

    def to_holiday(self) -> Holiday:
        return Holiday(
            holiday_date=self.holiday_date,
            name=self.name,
            scope=self.scope,
            locality=self.locality,
        )


# ============================================================================
# KPI schemas
# ============================================================================


class HoursBucketResponse(BaseModel):
    hours: Decimal
    amount: Decimal
    count: int


class ExpenseBucketResponse(BaseModel):
    amount: Decimal
    count: int
    kilometers: Decimal


class ContributorResponse(BaseModel):
    hours: Decimal
    hours_amount: Decimal
    expense_amount: Decimal
    total: Decimal

    @classmethod
    def from_totals(cls, totals: ContributorTotals) -> "ContributorResponse":
        return cls(
            hours=totals.hours,
            hours_amount=totals.hours_amount,
            expense_amount=totals.expense_amount,
            total=totals.total,
        )


class RollupResponse(BaseModel):
    """KPI rollup with derived averages."""

    period: str
    entry_count: int
    total_hours: Decimal
    hours_amount: Decimal
    expense_amount: Decimal
    grand_total: Decimal
    total_kilometers: Decimal
    average_cost_per_hour: Decimal
    holiday_hours_share: Decimal
    average_per_diem: Decimal
    average_cost_per_technician: Decimal
    average_cost_per_project: Decimal
    hours_by_day_type: dict[str, HoursBucketResponse]
    expenses_by_category: dict[str, ExpenseBucketResponse]
    by_technician: dict[str, ContributorResponse]
    by_project: dict[str, ContributorResponse]

    @classmethod
    def from_rollup(cls, rollup: KPIRollup) -> "RollupResponse":
        return cls(
            period=rollup.period,
            entry_count=rollup.entry_count,
            total_hours=rollup.total_hours,
            hours_amount=rollup.hours_amount,
            expense_amount=rollup.expense_amount,
            grand_total=rollup.grand_total,
            total_kilometers=rollup.total_kilometers,
            average_cost_per_hour=rollup.average_cost_per_hour,
            holiday_hours_share=rollup.holiday_hours_share,
            average_per_diem=rollup.average_per_diem,
            average_cost_per_technician=rollup.average_cost_per_technician,
            average_cost_per_project=rollup.average_cost_per_project,
            hours_by_day_type={
                k: HoursBucketResponse(hours=b.hours, amount=b.amount, count=b.count)
                for k, b in rollup.hours_by_day_type.items()
            },
            expenses_by_category={
                k: ExpenseBucketResponse(amount=b.amount, count=b.count, kilometers=b.kilometers)
                for k, b in rollup.expenses_by_category.items()
            },
            by_technician={
                k: ContributorResponse.from_totals(t) for k, t in rollup.by_technician.items()
            },
            by_project={k: ContributorResponse.from_totals(t) for k, t in rollup.by_project.items()},
        )


class RankingEntry(BaseModel):
    technician_id: str
    totals: ContributorResponse


class ComparisonResponse(BaseModel):
    """Percentage variation per metric; ``no_baseline`` when the baseline is zero."""

    current: str
    baseline: str
    variations: dict[str, str]


class MonthlyTotalsResponse(BaseModel):
    period: str
    hours_amount: Decimal
    expense_amount: Decimal
    grand_total: Decimal


class EvolutionResponse(BaseModel):
    year: int
    months: list[MonthlyTotalsResponse]
