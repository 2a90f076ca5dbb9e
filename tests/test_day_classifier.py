"""Tests for day classification."""

from datetime import date, timedelta

from overtime_engine.calculators.day_classifier import (
    Holiday,
    HolidayCalendar,
    HolidayScope,
    classify,
    describe_day,
)
from overtime_engine.calculators.types import DayType


def calendar_of(*days: date) -> HolidayCalendar:
    return HolidayCalendar(frozenset(days))


class TestClassify:
    """Test the classification priority order."""

    def test_workdays(self):
        """Monday to Friday without holidays are workdays."""
        monday = date(2025, 6, 9)
        for offset in range(5):
            assert classify(monday + timedelta(days=offset), calendar_of()) == DayType.WORKDAY

    def test_saturday(self):
        assert classify(date(2025, 6, 14), calendar_of()) == DayType.SATURDAY

    def test_sunday_is_holiday_without_calendar_entry(self):
        assert classify(date(2025, 6, 15), calendar_of()) == DayType.HOLIDAY

    def test_calendar_holiday_wins_over_weekday(self):
        """Every weekday in the calendar classifies as holiday."""
        monday = date(2025, 6, 9)
        week = [monday + timedelta(days=offset) for offset in range(7)]
        calendar = calendar_of(*week)
        assert all(classify(day, calendar) == DayType.HOLIDAY for day in week)

    def test_saturday_in_calendar_is_holiday(self):
        saturday = date(2025, 6, 14)
        assert classify(saturday, calendar_of(saturday)) == DayType.HOLIDAY

    def test_every_sunday_of_a_year(self):
        day = date(2025, 1, 5)
        while day.year == 2025:
            assert classify(day, calendar_of()) == DayType.HOLIDAY
            day += timedelta(days=7)


class TestHolidayCalendar:
    """Test holiday scope filtering."""

    def test_national_and_regional_apply_everywhere(self):
        holidays = [
            Holiday(date(2025, 1, 1), "New Year"),
            Holiday(date(2025, 4, 18), "Good Friday", HolidayScope.REGIONAL),
        ]
        calendar = HolidayCalendar.from_holidays(holidays, locality=None)
        assert date(2025, 1, 1) in calendar
        assert date(2025, 4, 18) in calendar

    def test_local_holiday_only_for_matching_locality(self):
        feast = Holiday(date(2025, 7, 31), "San Ignacio", HolidayScope.LOCAL, "bilbao")

        assert date(2025, 7, 31) in HolidayCalendar.from_holidays([feast], "bilbao")
        assert date(2025, 7, 31) not in HolidayCalendar.from_holidays([feast], "madrid")
        assert date(2025, 7, 31) not in HolidayCalendar.from_holidays([feast], None)


class TestDescribeDay:
    def test_names(self):
        holiday = date(2025, 6, 12)
        calendar = calendar_of(holiday)

        assert describe_day(holiday, calendar) == "Holiday"
        assert describe_day(date(2025, 6, 14), calendar) == "Saturday"
        assert describe_day(date(2025, 6, 15), calendar) == "Sunday"
        assert describe_day(date(2025, 6, 10), calendar) == "Tuesday"
