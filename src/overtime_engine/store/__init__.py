"""Persistence protocols and implementations."""

from overtime_engine.store.base import (
    ApproverAssignment,
    EntryStore,
    HolidayStore,
    IdentityProvider,
    RollupStore,
    TariffStore,
)

__all__ = [
    "ApproverAssignment",
    "EntryStore",
    "HolidayStore",
    "IdentityProvider",
    "RollupStore",
    "TariffStore",
]
