"""ORM models."""

from overtime_engine.models.base import Base, TimestampMixin
from overtime_engine.models.entries import EntryRecord
from overtime_engine.models.identity import ApproverAssignmentRecord
from overtime_engine.models.rollups import KpiRollupRecord
from overtime_engine.models.tariffs import HolidayRecord, TariffOverrideRecord, TariffRateRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "EntryRecord",
    "ApproverAssignmentRecord",
    "KpiRollupRecord",
    "HolidayRecord",
    "TariffOverrideRecord",
    "TariffRateRecord",
]
