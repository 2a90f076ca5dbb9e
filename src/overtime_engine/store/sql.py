"""SQLAlchemy-backed store."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from overtime_engine.calculators.day_classifier import Holiday, HolidayScope
from overtime_engine.calculators.types import RateCode, TariffRate, TariffUnit
from overtime_engine.domain.entries import Entry, entry_from_document, entry_to_document
from overtime_engine.domain.rollups import KPIRollup
from overtime_engine.exceptions import (
    ConcurrentModificationError,
    EntryNotFoundError,
    StorageUnavailableError,
)
from overtime_engine.models import (
    ApproverAssignmentRecord,
    EntryRecord,
    HolidayRecord,
    KpiRollupRecord,
    TariffOverrideRecord,
    TariffRateRecord,
)
from overtime_engine.services.state_machine import EntryState
from overtime_engine.store.base import ApproverAssignment

logger = logging.getLogger(__name__)


def _to_rate(record: TariffRateRecord | TariffOverrideRecord) -> TariffRate:
    return TariffRate(
        year=record.year,
        rate_code=RateCode(record.rate_code),
        amount=Decimal(record.amount),
        unit=TariffUnit(record.unit),
        user_id=getattr(record, "user_id", None),
    )


def _to_holiday(record: HolidayRecord) -> Holiday:
    return Holiday(
        holiday_date=record.holiday_date,
        name=record.name,
        scope=HolidayScope(record.scope),
        locality=record.locality or None,
    )


class SqlStore:
    """Implements every store protocol over one session factory.

    Each call runs in its own transaction. Compare-and-swap is a single
    ``UPDATE ... WHERE version = :expected``; the affected row count tells
    a lost race apart from success.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError:
            raise
        except DBAPIError as e:
            logger.error("Storage failure during %s: %s", operation, e)
            raise StorageUnavailableError(operation, e) from e

    # ----- entries -----

    async def get_entry(self, entry_id: str) -> Entry | None:
        async with self._transaction("get_entry") as session:
            record = await session.get(EntryRecord, entry_id)
            if record is None:
                return None
            return entry_from_document(record.document, record.version)

    async def insert_entry(self, entry: Entry) -> int:
        async with self._transaction("insert_entry") as session:
            session.add(
                EntryRecord(
                    entry_id=entry.entry_id,
                    kind=entry.kind.value,
                    owner_id=entry.owner_id,
                    state=entry.state.value,
                    entry_date=entry.entry_date,
                    version=1,
                    document=entry_to_document(entry),
                )
            )
        return 1

    async def compare_and_swap(self, entry: Entry, expected_version: int) -> int:
        new_version = expected_version + 1
        async with self._transaction("compare_and_swap") as session:
            result = await session.execute(
                update(EntryRecord)
                .where(
                    EntryRecord.entry_id == entry.entry_id,
                    EntryRecord.version == expected_version,
                )
                .values(
                    owner_id=entry.owner_id,
                    state=entry.state.value,
                    entry_date=entry.entry_date,
                    version=new_version,
                    document=entry_to_document(entry),
                )
            )
            if result.rowcount == 0:
                await self._raise_lost_update(session, entry.entry_id, expected_version)
        return new_version

    async def delete_entry(self, entry_id: str, expected_version: int) -> None:
        async with self._transaction("delete_entry") as session:
            result = await session.execute(
                delete(EntryRecord).where(
                    EntryRecord.entry_id == entry_id,
                    EntryRecord.version == expected_version,
                )
            )
            if result.rowcount == 0:
                await self._raise_lost_update(session, entry_id, expected_version)

    async def _raise_lost_update(
        self, session: AsyncSession, entry_id: str, expected_version: int
    ) -> None:
        current = await session.scalar(
            select(EntryRecord.version).where(EntryRecord.entry_id == entry_id)
        )
        if current is None:
            raise EntryNotFoundError(entry_id)
        raise ConcurrentModificationError(entry_id, expected_version)

    async def find_entries(
        self,
        state: EntryState | None = None,
        start: date | None = None,
        end: date | None = None,
        owner_id: str | None = None,
    ) -> list[Entry]:
        query = select(EntryRecord)
        if state is not None:
            query = query.where(EntryRecord.state == state.value)
        if start is not None:
            query = query.where(EntryRecord.entry_date >= start)
        if end is not None:
            query = query.where(EntryRecord.entry_date <= end)
        if owner_id is not None:
            query = query.where(EntryRecord.owner_id == owner_id)
        query = query.order_by(EntryRecord.entry_date, EntryRecord.entry_id)

        async with self._transaction("find_entries") as session:
            records = (await session.execute(query)).scalars().all()
            return [entry_from_document(r.document, r.version) for r in records]

    # ----- tariffs -----

    async def get_tariff(
        self,
        year: int,
        rate_code: RateCode,
        user_id: str | None = None,
    ) -> TariffRate | None:
        if user_id is None:
            query = select(TariffRateRecord).where(
                TariffRateRecord.year == year,
                TariffRateRecord.rate_code == rate_code.value,
            )
        else:
            query = select(TariffOverrideRecord).where(
                TariffOverrideRecord.user_id == user_id,
                TariffOverrideRecord.year == year,
                TariffOverrideRecord.rate_code == rate_code.value,
            )
        async with self._transaction("get_tariff") as session:
            record = (await session.execute(query)).scalar_one_or_none()
            return _to_rate(record) if record is not None else None

    async def list_tariffs(self, year: int) -> list[TariffRate]:
        async with self._transaction("list_tariffs") as session:
            records = (
                await session.execute(
                    select(TariffRateRecord)
                    .where(TariffRateRecord.year == year)
                    .order_by(TariffRateRecord.rate_code)
                )
            ).scalars().all()
            return [_to_rate(r) for r in records]

    async def upsert_tariff(self, rate: TariffRate) -> None:
        async with self._transaction("upsert_tariff") as session:
            if rate.user_id is None:
                record = (
                    await session.execute(
                        select(TariffRateRecord).where(
                            TariffRateRecord.year == rate.year,
                            TariffRateRecord.rate_code == rate.rate_code.value,
                        )
                    )
                ).scalar_one_or_none()
                if record is None:
                    record = TariffRateRecord(year=rate.year, rate_code=rate.rate_code.value)
                    session.add(record)
            else:
                record = (
                    await session.execute(
                        select(TariffOverrideRecord).where(
                            TariffOverrideRecord.user_id == rate.user_id,
                            TariffOverrideRecord.year == rate.year,
                            TariffOverrideRecord.rate_code == rate.rate_code.value,
                        )
                    )
                ).scalar_one_or_none()
                if record is None:
                    record = TariffOverrideRecord(
                        user_id=rate.user_id,
                        year=rate.year,
                        rate_code=rate.rate_code.value,
                    )
                    session.add(record)
            record.amount = rate.amount
            record.unit = rate.unit.value

    async def insert_year_if_empty(self, year: int, rates: list[TariffRate]) -> bool:
        try:
            async with self._transaction("insert_year_if_empty") as session:
                existing = await session.scalar(
                    select(func.count()).select_from(TariffRateRecord).where(
                        TariffRateRecord.year == year
                    )
                )
                if existing:
                    return False
                session.add_all(
                    TariffRateRecord(
                        year=year,
                        rate_code=rate.rate_code.value,
                        amount=rate.amount,
                        unit=rate.unit.value,
                    )
                    for rate in rates
                )
        except IntegrityError:
            # A concurrent writer filled the year between count and insert
            logger.info("Tariff year %d filled concurrently", year)
            return False
        return True

    # ----- holidays -----

    async def holidays_for_year(self, year: int) -> list[Holiday]:
        async with self._transaction("holidays_for_year") as session:
            records = (
                await session.execute(
                    select(HolidayRecord)
                    .where(
                        HolidayRecord.holiday_date >= date(year, 1, 1),
                        HolidayRecord.holiday_date <= date(year, 12, 31),
                    )
                    .order_by(HolidayRecord.holiday_date)
                )
            ).scalars().all()
            return [_to_holiday(r) for r in records]

    async def add_holiday(self, holiday: Holiday) -> None:
        locality = holiday.locality or ""
        async with self._transaction("add_holiday") as session:
            record = (
                await session.execute(
                    select(HolidayRecord).where(
                        HolidayRecord.holiday_date == holiday.holiday_date,
                        HolidayRecord.locality == locality,
                    )
                )
            ).scalar_one_or_none()
            if record is None:
                record = HolidayRecord(holiday_date=holiday.holiday_date, locality=locality)
                session.add(record)
            record.name = holiday.name
            record.scope = holiday.scope.value

    # ----- rollups -----

    async def replace_rollup(self, rollup: KPIRollup) -> None:
        async with self._transaction("replace_rollup") as session:
            await session.execute(
                delete(KpiRollupRecord).where(KpiRollupRecord.period == rollup.period)
            )
            session.add(KpiRollupRecord(period=rollup.period, document=rollup.to_dict()))

    async def get_rollup(self, period_key: str) -> KPIRollup | None:
        async with self._transaction("get_rollup") as session:
            record = await session.get(KpiRollupRecord, period_key)
            return KPIRollup.from_dict(record.document) if record is not None else None

    # ----- identity -----

    async def get_assignment(self, owner_id: str) -> ApproverAssignment | None:
        async with self._transaction("get_assignment") as session:
            record = await session.get(ApproverAssignmentRecord, owner_id)
            if record is None:
                return None
            return ApproverAssignment(
                owner_id=record.owner_id,
                role=record.role,
                hours_approver_id=record.hours_approver_id,
                expense_approver_id=record.expense_approver_id,
                locality=record.locality,
            )

    async def set_assignment(self, assignment: ApproverAssignment) -> None:
        async with self._transaction("set_assignment") as session:
            await session.merge(
                ApproverAssignmentRecord(
                    owner_id=assignment.owner_id,
                    role=assignment.role,
                    hours_approver_id=assignment.hours_approver_id,
                    expense_approver_id=assignment.expense_approver_id,
                    locality=assignment.locality,
                )
            )
