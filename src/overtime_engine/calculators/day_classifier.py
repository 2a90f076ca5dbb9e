"""Day classification against a holiday calendar."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from overtime_engine.calculators.types import DayType

SATURDAY = 5
SUNDAY = 6

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class HolidayScope(str, Enum):
    """Geographic scope of a holiday."""

    NATIONAL = "national"
    REGIONAL = "regional"
    LOCAL = "local"


@dataclass(frozen=True)
class Holiday:
    """A holiday date with its scope."""

    holiday_date: date
    name: str
    scope: HolidayScope = HolidayScope.NATIONAL
    locality: str | None = None

    def applies_to(self, locality: str | None) -> bool:
        """National and regional holidays apply everywhere, local ones only in their locality."""
        if self.scope != HolidayScope.LOCAL:
            return True
        return locality is not None and self.locality == locality


@dataclass(frozen=True)
class HolidayCalendar:
    """Set of holiday dates effective for one worker."""

    dates: frozenset[date] = field(default_factory=frozenset)

    @classmethod
    def from_holidays(
        cls,
        holidays: Iterable[Holiday],
        locality: str | None = None,
    ) -> HolidayCalendar:
        return cls(
            frozenset(h.holiday_date for h in holidays if h.applies_to(locality))
        )

    def __contains__(self, value: object) -> bool:
        return value in self.dates


def classify(day: date, calendar: HolidayCalendar) -> DayType:
    """Classify a date for rate selection.

    Priority:
    1. Date in the holiday calendar -> holiday
    2. Sunday -> holiday
    3. Saturday -> saturday
    4. Anything else -> workday
    """
    if day in calendar:
        return DayType.HOLIDAY

    weekday = day.weekday()
    if weekday == SUNDAY:
        return DayType.HOLIDAY
    if weekday == SATURDAY:
        return DayType.SATURDAY
    return DayType.WORKDAY


def describe_day(day: date, calendar: HolidayCalendar) -> str:
    """Human-readable day name for display."""
    if day in calendar:
        return "Holiday"
    return WEEKDAY_NAMES[day.weekday()]
