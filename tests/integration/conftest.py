"""Pytest configuration and fixtures for integration tests."""

from collections.abc import AsyncGenerator
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from flourish.core.clock import FixedClock
from flourish.core.schema import NUTRIENTS, PLANT_SPECIES
from flourish.main import Flourish


LOCAL_TZ = ZoneInfo("Europe/London")
START = datetime(2026, 5, 4, 8, 15, tzinfo=LOCAL_TZ)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture
async def app(sqlite_store, clock) -> AsyncGenerator[Flourish, None]:
    """Flourish wired to a real SQLite file with a seeded catalog."""
    flourish = Flourish(store=sqlite_store, clock=clock, scheduler=AsyncIOScheduler())
    await flourish.seed_catalog()
    yield flourish
    flourish.shutdown()


@pytest.fixture
async def catalog_data(sqlite_store) -> dict[str, dict]:
    """Species and nutrients as the read-only catalogs ship them."""
    return {
        "fern": await sqlite_store.create_record(
            collection=PLANT_SPECIES, data={"name": "Boston Fern", "wateringFrequency": 3}
        ),
        "boost": await sqlite_store.create_record(
            collection=NUTRIENTS, data={"name": "Sunshine Boost", "timer": "2", "isPremium": False}
        ),
        "elixir": await sqlite_store.create_record(
            collection=NUTRIENTS, data={"name": "Golden Elixir", "timer": "600", "isPremium": True}
        ),
    }
