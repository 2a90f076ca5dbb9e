"""Amount calculation shared by previews and authoritative recomputation."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import assert_never

from overtime_engine.calculators.types import DayType, RateCode, TariffSnapshot
from overtime_engine.domain.expenses import (
    ExpenseDetails,
    HotelDetails,
    MileageDetails,
    PerDiemDetails,
    PerDiemType,
    ReceiptDetails,
    VehicleType,
)
from overtime_engine.exceptions import ValidationError

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60

DAY_TYPE_RATE_CODES: dict[DayType, RateCode] = {
    DayType.WORKDAY: RateCode.OVERTIME_WORKDAY,
    DayType.SATURDAY: RateCode.OVERTIME_SATURDAY,
    DayType.HOLIDAY: RateCode.OVERTIME_HOLIDAY,
}

VEHICLE_RATE_CODES: dict[VehicleType, RateCode] = {
    VehicleType.OWN: RateCode.KM_OWN_VEHICLE,
    VehicleType.COMPANY: RateCode.KM_COMPANY_VEHICLE,
}

PER_DIEM_RATE_CODES: dict[PerDiemType, RateCode] = {
    PerDiemType.FULL: RateCode.PER_DIEM_FULL,
    PerDiemType.HALF: RateCode.PER_DIEM_HALF,
}


class AmountCalculator:
    """Pure monetary computation.

    Classification and tariff resolution happen upstream; this class only
    multiplies, so every rule stays side-effect free.

    Rounding:
    - Internal compute is exact (Decimal)
    - 2 decimals, half-up, at persistence via ``round_to_cents``
    """

    HOURS_PRECISION = Decimal("0.0001")
    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(AmountCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def parse_time(value: str, field: str = "time") -> int:
        """Parse ``HH:MM`` into minutes after midnight."""
        match = _TIME_RE.match(value or "")
        if match is None:
            raise ValidationError(field, f"'{value}' is not a valid HH:MM time")
        return int(match.group(1)) * 60 + int(match.group(2))

    @staticmethod
    def minutes_between(start_time: str, end_time: str) -> int:
        """Minutes from start to end; an end before the start crosses midnight."""
        start = AmountCalculator.parse_time(start_time, "start_time")
        end = AmountCalculator.parse_time(end_time, "end_time")

        minutes = end - start
        if minutes < 0:
            minutes += MINUTES_PER_DAY
        return minutes

    @staticmethod
    def hours_between(start_time: str, end_time: str) -> Decimal:
        """Hours rounded to ``HOURS_PRECISION`` for storage and display."""
        hours = Decimal(AmountCalculator.minutes_between(start_time, end_time)) / Decimal(60)
        return hours.quantize(AmountCalculator.HOURS_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def rate_code_for_day_type(day_type: DayType) -> RateCode:
        return DAY_TYPE_RATE_CODES[day_type]

    @staticmethod
    def rate_code_for_expense(details: ExpenseDetails) -> RateCode | None:
        """Rate code priced from the tariff table, or None for user-entered amounts."""
        match details:
            case MileageDetails():
                return VEHICLE_RATE_CODES[details.vehicle]
            case PerDiemDetails():
                return PER_DIEM_RATE_CODES[details.allowance]
            case HotelDetails() | ReceiptDetails():
                return None
            case _:
                assert_never(details)

    @staticmethod
    def time_amount(hours: Decimal, day_type: DayType, tariff: TariffSnapshot) -> Decimal:
        """hours * tariff amount. ``day_type`` only selected the tariff upstream."""
        if hours < 0:
            raise ValidationError("hours", "must not be negative")
        return hours * tariff.amount

    @staticmethod
    def minutes_amount(minutes: int, day_type: DayType, tariff: TariffSnapshot) -> Decimal:
        """minutes * tariff amount / 60, exact for any whole number of minutes."""
        if minutes < 0:
            raise ValidationError("minutes", "must not be negative")
        return Decimal(minutes) * tariff.amount / Decimal(60)

    @staticmethod
    def mileage_amount(
        kilometers: Decimal,
        vehicle: VehicleType,
        tariff: TariffSnapshot,
    ) -> Decimal:
        """kilometers * tariff amount. A zero company-vehicle rate is a valid value."""
        if kilometers < 0:
            raise ValidationError("kilometers", "must not be negative")
        return kilometers * tariff.amount

    @staticmethod
    def expense_amount(details: ExpenseDetails, tariff: TariffSnapshot | None) -> Decimal:
        """Amount for an expense.

        Tariff-priced categories require the snapshot resolved for
        ``rate_code_for_expense(details)``; user-entered ones ignore it.
        """
        match details:
            case MileageDetails():
                if tariff is None:
                    raise ValueError("Mileage expenses require a tariff")
                return AmountCalculator.mileage_amount(
                    details.kilometers, details.vehicle, tariff
                )
            case PerDiemDetails():
                if tariff is None:
                    raise ValueError("Per diem expenses require a tariff")
                return tariff.amount
            case HotelDetails():
                return details.amount
            case ReceiptDetails():
                return details.amount
            case _:
                assert_never(details)
