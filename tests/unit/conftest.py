"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from flourish.core.clock import FixedClock, to_storage
from flourish.core.schema import NUTRIENTS, PLANT_INSTANCES, PLANT_SPECIES, TASK_INSTANCES, TASK_TEMPLATES
from flourish.modules.plants.care import PlantCareService
from flourish.modules.plants.nutrients import NutrientService
from flourish.modules.tasks.engine import ProgressionEngine
from tests.unit.mocks import InMemoryDocumentStore


LOCAL_TZ = ZoneInfo("America/New_York")

# Mid-morning local time, well away from any DST change
NOW = datetime(2026, 6, 17, 10, 30, tzinfo=LOCAL_TZ)


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDocumentStore for each test."""
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    """Clock frozen at NOW in a non-UTC local zone."""
    return FixedClock(NOW)


@pytest.fixture
def plant_care(in_memory_db, clock):
    """PlantCareService over the in-memory store."""
    return PlantCareService(store=in_memory_db, clock=clock)


@pytest.fixture
def engine(in_memory_db, clock, plant_care):
    """ProgressionEngine wired to the in-memory store and real plant care."""
    return ProgressionEngine(store=in_memory_db, clock=clock, care_signal=plant_care)


@pytest.fixture
def nutrient_service(in_memory_db):
    """NutrientService over the in-memory store."""
    return NutrientService(store=in_memory_db)


@pytest.fixture
def make_template(in_memory_db) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory that stores a task template record."""

    async def _make(
        name: str = "Water your plant",
        category: str = "watering",
        default_recurrence_days: int | None = None,
        points: int = 10,
    ) -> dict[str, Any]:
        return await in_memory_db.create_record(
            TASK_TEMPLATES,
            {
                "name": name,
                "description": "",
                "category": category,
                "default_recurrence_days": default_recurrence_days,
                "points": points,
            },
        )

    return _make


@pytest.fixture
def make_task(in_memory_db) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory that stores a task instance record."""

    async def _make(
        template_id: str,
        scheduled_at: datetime = NOW,
        user_id: str = "user1",
        status: str = "pending",
        completed_at: datetime | None = None,
        plant_instance_id: str | None = None,
        reminder_enabled: bool = True,
    ) -> dict[str, Any]:
        return await in_memory_db.create_record(
            TASK_INSTANCES,
            {
                "template_id": template_id,
                "user_id": user_id,
                "linked_plant_instance_id": plant_instance_id,
                "scheduled_at": to_storage(scheduled_at),
                "completed_at": to_storage(completed_at) if completed_at else None,
                "status": status,
                "notes": None,
                "reminder_enabled": reminder_enabled,
            },
        )

    return _make


@pytest.fixture
def make_completed_on(make_task) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory for a task completed ``days_ago`` local days before NOW."""

    async def _make(template_id: str, days_ago: int, hour: int = 9, user_id: str = "user1") -> dict[str, Any]:
        when = (NOW - timedelta(days=days_ago)).replace(hour=hour, minute=0)
        return await make_task(
            template_id,
            scheduled_at=when,
            status="completed",
            completed_at=when,
            user_id=user_id,
        )

    return _make


@pytest.fixture
async def species(in_memory_db) -> dict[str, Any]:
    """A species watered every 5 days."""
    return await in_memory_db.create_record(PLANT_SPECIES, {"name": "Monstera", "wateringFrequency": 5})


@pytest.fixture
def make_plant(in_memory_db, species) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory that stores a plant record (legacy string-typed levels accepted)."""

    async def _make(**overrides: Any) -> dict[str, Any]:
        data = {
            "user_id": "user1",
            "species_id": species["id"],
            "water_level": 50,
            "care_level": 40,
            "active_nutrients": [],
            "acquired_at": to_storage(NOW - timedelta(days=60)),
            **overrides,
        }
        return await in_memory_db.create_record(PLANT_INSTANCES, data)

    return _make


@pytest.fixture
def make_nutrient(in_memory_db) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory that stores a nutrient record (timer as a string, as the catalog ships it)."""

    async def _make(name: str = "Sunshine Boost", timer: str | None = "5", is_premium: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {"name": name, "isPremium": is_premium}
        if timer is not None:
            data["timer"] = timer
        return await in_memory_db.create_record(NUTRIENTS, data)

    return _make
