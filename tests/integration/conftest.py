"""Integration test fixtures with a real database and the HTTP app."""

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from overtime_engine.api.app import create_app
from overtime_engine.calculators.day_classifier import Holiday, HolidayScope
from overtime_engine.clock import FixedClock
from overtime_engine.config import Settings
from overtime_engine.database import create_all, create_session_factory, get_engine
from overtime_engine.services.entry_service import EntryService
from overtime_engine.store.base import ApproverAssignment
from overtime_engine.store.memory import InMemoryStore
from overtime_engine.store.sql import SqlStore

from tests.conftest import FIXED_NOW, LEAD, LOCAL_FEAST, OFFICE, THURSDAY, TECH, default_rates


async def seed(store) -> None:
    """2025 default tariffs, two holidays and the approvers of TECH."""
    await store.insert_year_if_empty(2025, default_rates(2025))
    await store.add_holiday(Holiday(holiday_date=THURSDAY, name="Corpus Christi"))
    await store.add_holiday(
        Holiday(
            holiday_date=LOCAL_FEAST,
            name="San Ignacio",
            scope=HolidayScope.LOCAL,
            locality="bilbao",
        )
    )
    await store.set_assignment(
        ApproverAssignment(
            owner_id=TECH,
            role="technician",
            hours_approver_id=LEAD,
            expense_approver_id=OFFICE,
            locality="bilbao",
        )
    )


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlStore, None]:
    """Seeded SQL store on a fresh SQLite file."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'engine.db'}")
    await create_all(engine)
    store = SqlStore(create_session_factory(engine))
    await seed(store)
    yield store
    await engine.dispose()


@pytest.fixture
def entry_service_sql(sql_store: SqlStore) -> EntryService:
    return EntryService(
        entries=sql_store,
        tariffs=sql_store,
        holidays=sql_store,
        identity=sql_store,
        clock=FixedClock(FIXED_NOW),
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        max_kilometers=Decimal("2000"),
        max_expense_amount=Decimal("10000"),
        tariff_zero_fallback=False,
    )


@pytest_asyncio.fixture
async def api_store() -> InMemoryStore:
    store = InMemoryStore()
    await seed(store)
    return store


@pytest_asyncio.fixture
async def client(api_store: InMemoryStore, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app over the in-memory store."""
    app = create_app(store=api_store, clock=FixedClock(FIXED_NOW), app_settings=test_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
