"""Year-scoped tariff resolution, overrides and year cloning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from overtime_engine.calculators.types import (
    DEFAULT_TARIFFS,
    RateCode,
    TariffRate,
    TariffSnapshot,
    TariffSource,
    TariffUnit,
)
from overtime_engine.exceptions import TariffLockedError, TariffNotFoundError, ValidationError

if TYPE_CHECKING:
    from overtime_engine.clock import Clock
    from overtime_engine.store.base import TariffStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloneResult:
    """Outcome of ``TariffRegistry.clone_year``."""

    source_year: int
    dest_year: int
    cloned: bool
    rows: int = 0


class TariffRegistry:
    """Resolves tariffs for a rate code and date.

    Resolution priority:
    1. The user's override for (user_id, year(date), rate_code)
    2. The general table row for (year(date), rate_code)

    A tariff is constant for a whole calendar year. Results are cached per
    (year, rate_code, user_id) for the lifetime of this instance, so one
    registry should be created per calculation request.
    """

    def __init__(
        self,
        store: TariffStore,
        clock: Clock,
        zero_fallback: bool = False,
    ):
        self.store = store
        self.clock = clock
        self.zero_fallback = zero_fallback
        self._cache: dict[tuple[int, RateCode, str | None], TariffSnapshot] = {}

    async def resolve(
        self,
        rate_code: RateCode,
        on_date: date,
        user_id: str | None = None,
    ) -> TariffSnapshot:
        """Resolve the tariff effective at ``on_date``.

        Raises:
            TariffNotFoundError: If neither an override nor a table row exists
                (unless the zero-fallback policy is enabled)
        """
        year = on_date.year
        cache_key = (year, rate_code, user_id)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        rate: TariffRate | None = None
        if user_id is not None:
            rate = await self.store.get_tariff(year, rate_code, user_id)
        if rate is None:
            rate = await self.store.get_tariff(year, rate_code)

        if rate is not None:
            snapshot = TariffSnapshot.from_rate(rate)
        elif self.zero_fallback:
            logger.warning(
                "No tariff for %s in %d; applying zero-rate fallback policy",
                rate_code.value,
                year,
            )
            snapshot = TariffSnapshot(
                rate_code=rate_code,
                amount=Decimal("0"),
                unit=rate_code.default_unit,
                year=year,
                source=TariffSource.FALLBACK,
            )
        else:
            raise TariffNotFoundError(rate_code.value, year, user_id)

        self._cache[cache_key] = snapshot
        return snapshot

    async def table_for_year(self, year: int) -> list[TariffRate]:
        """General tariff rows of a year, ordered by rate code."""
        rates = await self.store.list_tariffs(year)
        return sorted(rates, key=lambda r: r.rate_code.value)

    async def set_tariff(
        self,
        year: int,
        rate_code: RateCode,
        amount: Decimal,
        unit: TariffUnit | None = None,
        user_id: str | None = None,
    ) -> TariffRate:
        """Write a general row, or a user override when ``user_id`` is given."""
        self._ensure_writable(year)
        if amount < 0:
            raise ValidationError("amount", "tariff amount must not be negative")

        rate = TariffRate(
            year=year,
            rate_code=rate_code,
            amount=amount,
            unit=unit or rate_code.default_unit,
            user_id=user_id,
        )
        await self.store.upsert_tariff(rate)
        self._invalidate(year)

        logger.info(
            "Tariff %s for %d set to %s%s",
            rate_code.value,
            year,
            amount,
            f" (override for {user_id})" if user_id else "",
        )
        return rate

    async def clone_year(
        self,
        source_year: int,
        dest_year: int,
        actor_id: str | None = None,
    ) -> CloneResult:
        """Copy every general row of ``source_year`` into an empty ``dest_year``.

        Repeat calls are no-ops returning ``cloned=False``. The emptiness
        check and the insert are one atomic store operation.
        """
        if source_year == dest_year:
            raise ValidationError("dest_year", "must differ from source_year")

        existing = await self.store.list_tariffs(dest_year)
        if existing:
            logger.info(
                "Tariff clone %d -> %d skipped: destination has %d rows",
                source_year,
                dest_year,
                len(existing),
            )
            return CloneResult(source_year, dest_year, cloned=False)

        self._ensure_writable(dest_year)

        source_rates = await self.store.list_tariffs(source_year)
        if not source_rates:
            raise TariffNotFoundError(None, source_year)

        copies = [
            TariffRate(
                year=dest_year,
                rate_code=rate.rate_code,
                amount=rate.amount,
                unit=rate.unit,
            )
            for rate in source_rates
        ]
        cloned = await self.store.insert_year_if_empty(dest_year, copies)
        if cloned:
            self._invalidate(dest_year)

        logger.info(
            "Tariff clone %d -> %d by %s: %s",
            source_year,
            dest_year,
            actor_id or "system",
            f"{len(copies)} rows copied" if cloned else "destination filled concurrently",
        )
        return CloneResult(source_year, dest_year, cloned=cloned, rows=len(copies) if cloned else 0)

    async def seed_defaults(self, year: int) -> CloneResult:
        """Write the default tariff set into an empty year."""
        self._ensure_writable(year)
        rates = [
            TariffRate(year=year, rate_code=code, amount=amount, unit=code.default_unit)
            for code, amount in DEFAULT_TARIFFS.items()
        ]
        seeded = await self.store.insert_year_if_empty(year, rates)
        if seeded:
            self._invalidate(year)
            logger.info("Seeded %d default tariffs for %d", len(rates), year)
        return CloneResult(year, year, cloned=seeded, rows=len(rates) if seeded else 0)

    def _ensure_writable(self, year: int) -> None:
        """Only the current and future years may be written."""
        current_year = self.clock.today().year
        if year < current_year:
            raise TariffLockedError(year, current_year)

    def _invalidate(self, year: int) -> None:
        for key in [k for k in self._cache if k[0] == year]:
            del self._cache[key]
