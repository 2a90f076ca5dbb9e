"""Day classification, tariff resolution and amount calculation."""

from overtime_engine.calculators.types import DayType, RateCode, TariffRate, TariffSnapshot, TariffUnit
from overtime_engine.calculators.day_classifier import Holiday, HolidayCalendar, classify
from overtime_engine.calculators.amounts import AmountCalculator

__all__ = [
    "DayType",
    "RateCode",
    "TariffRate",
    "TariffSnapshot",
    "TariffUnit",
    "Holiday",
    "HolidayCalendar",
    "classify",
    "AmountCalculator",
]
