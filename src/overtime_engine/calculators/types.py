"""Type definitions for the tariff and calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class DayType(str, Enum):
    """Day classification used for overtime rate selection."""

    WORKDAY = "workday"
    SATURDAY = "saturday"
    HOLIDAY = "holiday"


class TariffUnit(str, Enum):
    """Unit a tariff amount is expressed in."""

    HOUR = "hour"
    DAY = "day"
    NIGHT = "night"
    KM = "km"
    UNIT = "unit"


class RateCode(str, Enum):
    """Payable rate identifiers."""

    OVERTIME_WORKDAY = "overtime_workday"
    OVERTIME_SATURDAY = "overtime_saturday"
    OVERTIME_HOLIDAY = "overtime_holiday"
    PER_DIEM_FULL = "per_diem_full"
    PER_DIEM_HALF = "per_diem_half"
    KM_OWN_VEHICLE = "km_own_vehicle"
    KM_COMPANY_VEHICLE = "km_company_vehicle"

    @property
    def default_unit(self) -> TariffUnit:
        return RATE_CODE_UNITS[self]


RATE_CODE_UNITS: dict[RateCode, TariffUnit] = {
    RateCode.OVERTIME_WORKDAY: TariffUnit.HOUR,
    RateCode.OVERTIME_SATURDAY: TariffUnit.HOUR,
    RateCode.OVERTIME_HOLIDAY: TariffUnit.HOUR,
    RateCode.PER_DIEM_FULL: TariffUnit.DAY,
    RateCode.PER_DIEM_HALF: TariffUnit.DAY,
    RateCode.KM_OWN_VEHICLE: TariffUnit.KM,
    RateCode.KM_COMPANY_VEHICLE: TariffUnit.KM,
}

# Tariff set written by ``TariffRegistry.seed_defaults``
DEFAULT_TARIFFS: dict[RateCode, Decimal] = {
    RateCode.OVERTIME_WORKDAY: Decimal("15.00"),
    RateCode.OVERTIME_SATURDAY: Decimal("18.00"),
    RateCode.OVERTIME_HOLIDAY: Decimal("25.00"),
    RateCode.PER_DIEM_FULL: Decimal("60.00"),
    RateCode.PER_DIEM_HALF: Decimal("30.00"),
    RateCode.KM_OWN_VEHICLE: Decimal("0.26"),
    RateCode.KM_COMPANY_VEHICLE: Decimal("0.00"),
}


class TariffSource(str, Enum):
    """Where a resolved tariff came from."""

    TABLE = "table"
    OVERRIDE = "override"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TariffRate:
    """A tariff row: general when ``user_id`` is None, a user override otherwise."""

    year: int
    rate_code: RateCode
    amount: Decimal
    unit: TariffUnit
    user_id: str | None = None

    @property
    def is_override(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class TariffSnapshot:
    """The resolved, immutable tariff used for one calculation."""

    rate_code: RateCode
    amount: Decimal
    unit: TariffUnit
    year: int
    source: TariffSource = TariffSource.TABLE

    @classmethod
    def from_rate(cls, rate: TariffRate) -> TariffSnapshot:
        return cls(
            rate_code=rate.rate_code,
            amount=rate.amount,
            unit=rate.unit,
            year=rate.year,
            source=TariffSource.OVERRIDE if rate.is_override else TariffSource.TABLE,
        )

    def to_canonical_dict(self) -> dict[str, str | int]:
        return {
            "rate_code": self.rate_code.value,
            "amount": str(self.amount),
            "unit": self.unit.value,
            "year": self.year,
            "source": self.source.value,
        }

    @classmethod
    def from_canonical_dict(cls, data: dict) -> TariffSnapshot:
        return cls(
            rate_code=RateCode(data["rate_code"]),
            amount=Decimal(data["amount"]),
            unit=TariffUnit(data["unit"]),
            year=int(data["year"]),
            source=TariffSource(data.get("source", TariffSource.TABLE.value)),
        )
