"""Time and expense entries with their audit trail."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from overtime_engine.calculators.types import DayType, RateCode, TariffSnapshot
from overtime_engine.domain.expenses import (
    ExpenseCategory,
    ExpenseDetails,
    details_from_dict,
    details_to_dict,
)
from overtime_engine.services.state_machine import Action, EntryState


class EntryKind(str, Enum):
    """Entry kinds; each has its own approver."""

    HOURS = "hours"
    EXPENSE = "expense"


@dataclass(frozen=True)
class AuditEntry:
    """One recorded transition. Never mutated or removed."""

    timestamp: datetime
    actor_id: str
    actor_role: str
    action: Action
    from_state: EntryState
    to_state: EntryState
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action": self.action.value,
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            actor_id=data["actor_id"],
            actor_role=data["actor_role"],
            action=Action(data["action"]),
            from_state=EntryState(data["from_state"]),
            to_state=EntryState(data["to_state"]),
            comment=data.get("comment"),
        )


@dataclass(frozen=True)
class TimeEntry:
    """Overtime hours worked on one date."""

    entry_id: str
    owner_id: str
    entry_date: date
    start_time: str
    end_time: str
    hours: Decimal
    day_type: DayType
    rate_code: RateCode
    project_id: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    tariff: TariffSnapshot | None = None
    state: EntryState = EntryState.DRAFT
    history: tuple[AuditEntry, ...] = field(default_factory=tuple)
    version: int = 0

    @property
    def kind(self) -> EntryKind:
        return EntryKind.HOURS


@dataclass(frozen=True)
class ExpenseEntry:
    """A job-related expense."""

    entry_id: str
    owner_id: str
    entry_date: date
    details: ExpenseDetails
    project_id: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    tariff: TariffSnapshot | None = None
    state: EntryState = EntryState.DRAFT
    history: tuple[AuditEntry, ...] = field(default_factory=tuple)
    version: int = 0

    @property
    def kind(self) -> EntryKind:
        return EntryKind.EXPENSE

    @property
    def category(self) -> ExpenseCategory:
        return self.details.category


Entry = TimeEntry | ExpenseEntry


def _dec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def entry_to_document(entry: Entry) -> dict[str, Any]:
    """Serialize an entry to a JSON-compatible document (version excluded)."""
    doc: dict[str, Any] = {
        "entry_id": entry.entry_id,
        "kind": entry.kind.value,
        "owner_id": entry.owner_id,
        "entry_date": entry.entry_date.isoformat(),
        "project_id": entry.project_id,
        "description": entry.description,
        "amount": str(entry.amount) if entry.amount is not None else None,
        "tariff": entry.tariff.to_canonical_dict() if entry.tariff else None,
        "state": entry.state.value,
        "history": [audit.to_dict() for audit in entry.history],
    }
    if isinstance(entry, TimeEntry):
        doc.update(
            start_time=entry.start_time,
            end_time=entry.end_time,
            hours=str(entry.hours),
            day_type=entry.day_type.value,
            rate_code=entry.rate_code.value,
        )
    else:
        doc["details"] = details_to_dict(entry.details)
    return doc


def entry_from_document(doc: dict[str, Any], version: int = 0) -> Entry:
    """Rebuild an entry from a stored document."""
    common: dict[str, Any] = {
        "entry_id": doc["entry_id"],
        "owner_id": doc["owner_id"],
        "entry_date": date.fromisoformat(doc["entry_date"]),
        "project_id": doc.get("project_id"),
        "description": doc.get("description"),
        "amount": _dec(doc.get("amount")),
        "tariff": TariffSnapshot.from_canonical_dict(doc["tariff"]) if doc.get("tariff") else None,
        "state": EntryState(doc["state"]),
        "history": tuple(AuditEntry.from_dict(a) for a in doc.get("history", [])),
        "version": version,
    }
    if doc["kind"] == EntryKind.HOURS.value:
        return TimeEntry(
            start_time=doc["start_time"],
            end_time=doc["end_time"],
            hours=Decimal(doc["hours"]),
            day_type=DayType(doc["day_type"]),
            rate_code=RateCode(doc["rate_code"]),
            **common,
        )
    return ExpenseEntry(details=details_from_dict(doc["details"]), **common)
