"""Tests for the UI action boundary."""

from unittest.mock import patch

import pytest

from flourish.core.db_client import DatabaseError
from flourish.core.errors import ErrorCode
from flourish.core.schema import TASK_INSTANCES
from flourish.interface import actions


@pytest.mark.unit
class TestCompleteTaskAction:
    """Tests for actions.complete_task."""

    async def test_success(self, engine, make_template, make_task):
        template = await make_template(points=20, default_recurrence_days=7)
        record = await make_task(template["id"])

        result = await actions.complete_task(engine, record["id"])

        assert result.success
        assert result.message == "Task completed! +20 points"
        assert result.data["points"] == 20
        assert result.data["task_id"] == record["id"]
        assert "next_task_id" in result.data
        assert result.error is None

    async def test_store_failure_leaves_task_pending(self, engine, in_memory_db, make_template, make_task):
        template = await make_template(default_recurrence_days=7)
        record = await make_task(template["id"])

        with patch.object(in_memory_db, "create_record", side_effect=DatabaseError("disk full")):
            result = await actions.complete_task(engine, record["id"])

        assert not result.success
        assert result.error.code == ErrorCode.ERR_PERSISTENCE
        stored = await in_memory_db.get_record(TASK_INSTANCES, record["id"])
        assert (stored["status"], stored["completed_at"]) == ("pending", None)

    async def test_missing_task(self, engine):
        result = await actions.complete_task(engine, "missing")

        assert not result.success
        assert result.error.code == ErrorCode.ERR_TASK_NOT_FOUND
        assert result.message == result.error.message

    async def test_already_completed(self, engine, make_template, make_task):
        template = await make_template()
        record = await make_task(template["id"])
        await actions.complete_task(engine, record["id"])

        result = await actions.complete_task(engine, record["id"])

        assert not result.success
        assert result.error.code == ErrorCode.ERR_INVALID_STATE_TRANSITION

    async def test_missing_template(self, engine, make_task):
        record = await make_task("deleted-template")

        result = await actions.complete_task(engine, record["id"])

        assert result.error.code == ErrorCode.ERR_TEMPLATE_NOT_FOUND


@pytest.mark.unit
class TestSkipTaskAction:
    """Tests for actions.skip_task."""

    async def test_success(self, engine, make_template, make_task):
        template = await make_template()
        record = await make_task(template["id"])

        result = await actions.skip_task(engine, record["id"], "Raining")

        assert result.success
        assert result.message == "Task skipped"

    async def test_store_failure(self, engine, in_memory_db, make_template, make_task):
        template = await make_template()
        record = await make_task(template["id"])

        with patch.object(in_memory_db, "update_record", side_effect=DatabaseError("disk full")):
            result = await actions.skip_task(engine, record["id"])

        assert not result.success
        assert result.error.code == ErrorCode.ERR_PERSISTENCE


@pytest.mark.unit
class TestApplyNutrientAction:
    """Tests for actions.apply_nutrient."""

    async def test_success(self, nutrient_service, make_plant, make_nutrient):
        plant = await make_plant()
        nutrient = await make_nutrient(timer="60")

        result = await actions.apply_nutrient(nutrient_service, plant["id"], nutrient["id"])

        assert result.success
        assert result.message == "Nutrient applied successfully!"
        assert result.data["water_level"] == 60
        assert result.data["active_nutrients"][0]["remaining_seconds"] == 60

    async def test_premium_required(self, nutrient_service, make_plant, make_nutrient):
        plant = await make_plant()
        nutrient = await make_nutrient(is_premium=True)

        result = await actions.apply_nutrient(nutrient_service, plant["id"], nutrient["id"])

        assert result.error.code == ErrorCode.ERR_PREMIUM_REQUIRED

    @pytest.mark.parametrize(
        ("plant_exists", "expected_code"),
        [(True, ErrorCode.ERR_NUTRIENT_NOT_FOUND), (False, ErrorCode.ERR_PLANT_NOT_FOUND)],
    )
    async def test_not_found_codes(self, nutrient_service, make_plant, make_nutrient, plant_exists, expected_code):
        if plant_exists:
            plant_id = (await make_plant())["id"]
            nutrient_id = "n404"
        else:
            plant_id = "p404"
            nutrient_id = (await make_nutrient())["id"]

        result = await actions.apply_nutrient(nutrient_service, plant_id, nutrient_id)

        assert result.error.code == expected_code


@pytest.mark.unit
class TestRefreshStats:
    """Tests for actions.refresh_stats."""

    async def test_returns_stats(self, engine, make_template, make_completed_on):
        template = await make_template()
        await make_completed_on(template["id"], days_ago=0)

        stats = await actions.refresh_stats(engine, "user1")

        assert stats.completed_tasks == 1

    async def test_failure_returns_none(self, engine, in_memory_db):
        with patch.object(in_memory_db, "list_records", side_effect=DatabaseError("locked")):
            assert await actions.refresh_stats(engine, "user1") is None
