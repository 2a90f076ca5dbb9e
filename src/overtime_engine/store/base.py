"""Persistence and collaborator interfaces consumed by the engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from overtime_engine.calculators.day_classifier import Holiday
    from overtime_engine.calculators.types import RateCode, TariffRate
    from overtime_engine.domain.entries import Entry
    from overtime_engine.domain.rollups import KPIRollup
    from overtime_engine.services.state_machine import EntryState


@runtime_checkable
class EntryStore(Protocol):
    """Entry documents with atomic get / compare-and-swap semantics."""

    async def get_entry(self, entry_id: str) -> Entry | None:
        """Load an entry with its current version, or None."""
        ...

    async def insert_entry(self, entry: Entry) -> int:
        """Insert a new entry and return its version."""
        ...

    async def compare_and_swap(self, entry: Entry, expected_version: int) -> int:
        """Replace the entry only if its stored version is ``expected_version``.

        Returns the new version. Raises ConcurrentModificationError when the
        stored version differs, EntryNotFoundError when the entry is gone.
        """
        ...

    async def delete_entry(self, entry_id: str, expected_version: int) -> None:
        """Delete an entry guarded by its version."""
        ...

    async def find_entries(
        self,
        state: EntryState | None = None,
        start: date | None = None,
        end: date | None = None,
        owner_id: str | None = None,
    ) -> list[Entry]:
        """Entries filtered by state, inclusive date range and owner."""
        ...


@runtime_checkable
class TariffStore(Protocol):
    """Tariff tables and per-user overrides with upsert semantics."""

    async def get_tariff(
        self,
        year: int,
        rate_code: RateCode,
        user_id: str | None = None,
    ) -> TariffRate | None:
        """General row when ``user_id`` is None, that user's override otherwise."""
        ...

    async def list_tariffs(self, year: int) -> list[TariffRate]:
        """General rows of a year."""
        ...

    async def upsert_tariff(self, rate: TariffRate) -> None:
        ...

    async def insert_year_if_empty(self, year: int, rates: list[TariffRate]) -> bool:
        """Atomically insert ``rates`` only if ``year`` has no general rows."""
        ...


@runtime_checkable
class HolidayStore(Protocol):
    """Holiday calendar provider."""

    async def holidays_for_year(self, year: int) -> list[Holiday]:
        ...

    async def add_holiday(self, holiday: Holiday) -> None:
        ...


@runtime_checkable
class RollupStore(Protocol):
    """Stored KPI rollups, replaced atomically per period."""

    async def replace_rollup(self, rollup: KPIRollup) -> None:
        ...

    async def get_rollup(self, period_key: str) -> KPIRollup | None:
        ...


@dataclass(frozen=True)
class ApproverAssignment:
    """Roles and approvers bound to an entry owner."""

    owner_id: str
    role: str
    hours_approver_id: str | None = None
    expense_approver_id: str | None = None
    locality: str | None = None


@runtime_checkable
class IdentityProvider(Protocol):
    """Identity/role collaborator."""

    async def get_assignment(self, owner_id: str) -> ApproverAssignment | None:
        ...
