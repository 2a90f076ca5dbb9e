"""In-process store used by tests and the operator CLI."""

from __future__ import annotations

import asyncio
import copy
from datetime import date
from typing import Any

from overtime_engine.calculators.day_classifier import Holiday
from overtime_engine.calculators.types import RateCode, TariffRate
from overtime_engine.domain.entries import Entry, entry_from_document, entry_to_document
from overtime_engine.domain.rollups import KPIRollup
from overtime_engine.exceptions import ConcurrentModificationError, EntryNotFoundError
from overtime_engine.services.state_machine import EntryState
from overtime_engine.store.base import ApproverAssignment


class InMemoryStore:
    """Implements every store protocol plus the identity provider.

    Entries are kept as serialized documents so callers never share
    mutable state with the store. One lock serializes all writes, which
    makes compare-and-swap and ``insert_year_if_empty`` atomic.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._entries: dict[str, tuple[dict[str, Any], int]] = {}
        self._tariffs: dict[tuple[int, RateCode, str | None], TariffRate] = {}
        self._holidays: dict[int, list[Holiday]] = {}
        self._rollups: dict[str, dict[str, Any]] = {}
        self._assignments: dict[str, ApproverAssignment] = {}

    # ----- entries -----

    async def get_entry(self, entry_id: str) -> Entry | None:
        stored = self._entries.get(entry_id)
        if stored is None:
            return None
        doc, version = stored
        return entry_from_document(copy.deepcopy(doc), version)

    async def insert_entry(self, entry: Entry) -> int:
        async with self._lock:
            if entry.entry_id in self._entries:
                raise ValueError(f"Entry {entry.entry_id} already exists")
            self._entries[entry.entry_id] = (entry_to_document(entry), 1)
            return 1

    async def compare_and_swap(self, entry: Entry, expected_version: int) -> int:
        async with self._lock:
            stored = self._entries.get(entry.entry_id)
            if stored is None:
                raise EntryNotFoundError(entry.entry_id)
            if stored[1] != expected_version:
                raise ConcurrentModificationError(entry.entry_id, expected_version)
            new_version = expected_version + 1
            self._entries[entry.entry_id] = (entry_to_document(entry), new_version)
            return new_version

    async def delete_entry(self, entry_id: str, expected_version: int) -> None:
        async with self._lock:
            stored = self._entries.get(entry_id)
            if stored is None:
                raise EntryNotFoundError(entry_id)
            if stored[1] != expected_version:
                raise ConcurrentModificationError(entry_id, expected_version)
            del self._entries[entry_id]

    async def find_entries(
        self,
        state: EntryState | None = None,
        start: date | None = None,
        end: date | None = None,
        owner_id: str | None = None,
    ) -> list[Entry]:
        results = []
        for doc, version in self._entries.values():
            if state is not None and doc["state"] != state.value:
                continue
            if owner_id is not None and doc["owner_id"] != owner_id:
                continue
            entry_date = date.fromisoformat(doc["entry_date"])
            if start is not None and entry_date < start:
                continue
            if end is not None and entry_date > end:
                continue
            results.append(entry_from_document(copy.deepcopy(doc), version))
        return sorted(results, key=lambda e: (e.entry_date, e.entry_id))

    # ----- tariffs -----

    async def get_tariff(
        self,
        year: int,
        rate_code: RateCode,
        user_id: str | None = None,
    ) -> TariffRate | None:
        return self._tariffs.get((year, rate_code, user_id))

    async def list_tariffs(self, year: int) -> list[TariffRate]:
        return [
            rate
            for (rate_year, _, user_id), rate in self._tariffs.items()
            if rate_year == year and user_id is None
        ]

    async def upsert_tariff(self, rate: TariffRate) -> None:
        async with self._lock:
            self._tariffs[(rate.year, rate.rate_code, rate.user_id)] = rate

    async def insert_year_if_empty(self, year: int, rates: list[TariffRate]) -> bool:
        async with self._lock:
            if await self.list_tariffs(year):
                return False
            for rate in rates:
                self._tariffs[(year, rate.rate_code, None)] = rate
            return True

    # ----- holidays -----

    async def holidays_for_year(self, year: int) -> list[Holiday]:
        return list(self._holidays.get(year, []))

    async def add_holiday(self, holiday: Holiday) -> None:
        async with self._lock:
            year_holidays = self._holidays.setdefault(holiday.holiday_date.year, [])
            year_holidays[:] = [
                h
                for h in year_holidays
                if (h.holiday_date, h.locality) != (holiday.holiday_date, holiday.locality)
            ]
            year_holidays.append(holiday)

    # ----- rollups -----

    async def replace_rollup(self, rollup: KPIRollup) -> None:
        async with self._lock:
            self._rollups[rollup.period] = rollup.to_dict()

    async def get_rollup(self, period_key: str) -> KPIRollup | None:
        data = self._rollups.get(period_key)
        return KPIRollup.from_dict(data) if data is not None else None

    # ----- identity -----

    async def get_assignment(self, owner_id: str) -> ApproverAssignment | None:
        return self._assignments.get(owner_id)

    async def set_assignment(self, assignment: ApproverAssignment) -> None:
        async with self._lock:
            self._assignments[assignment.owner_id] = assignment
