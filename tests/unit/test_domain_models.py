"""Tests for domain model validation and legacy-field normalization."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from flourish.domain.plant import ActiveNutrientEffect, Nutrient, PlantInstance, PlantSpecies
from flourish.domain.task import TaskCategory, TaskInstance, TaskStatus, TaskTemplate


@pytest.mark.unit
class TestTaskTemplate:
    """Tests for TaskTemplate."""

    def test_unknown_category_maps_to_other(self):
        template = TaskTemplate(id="t1", name="Meditate", category="mindfulness")

        assert template.category == TaskCategory.OTHER

    def test_category_is_case_insensitive(self):
        assert TaskTemplate(id="t1", name="Water", category="Watering").category == TaskCategory.WATERING

    def test_zero_recurrence_means_one_off(self):
        assert TaskTemplate(id="t1", name="Repot", default_recurrence_days=0).default_recurrence_days is None

    def test_negative_points_rejected(self):
        with pytest.raises(ValidationError):
            TaskTemplate(id="t1", name="Bad", points=-1)

    def test_frozen(self):
        template = TaskTemplate(id="t1", name="Water")

        with pytest.raises(ValidationError):
            template.points = 50


@pytest.mark.unit
class TestTaskInstance:
    """Tests for TaskInstance."""

    def _record(self, **overrides):
        return {
            "id": "1000",
            "template_id": "t1",
            "user_id": "user1",
            "scheduled_at": "2026-06-17T14:00:00+00:00",
            **overrides,
        }

    def test_parses_stored_timestamps(self):
        task = TaskInstance.model_validate(self._record())

        assert task.scheduled_at == datetime(2026, 6, 17, 14, 0, tzinfo=UTC)
        assert task.status == TaskStatus.PENDING
        assert task.reminder_enabled is True

    def test_completed_requires_completed_at(self):
        with pytest.raises(ValidationError, match="completed_at"):
            TaskInstance.model_validate(self._record(status="completed"))

    def test_pending_must_not_have_completed_at(self):
        with pytest.raises(ValidationError, match="completed_at"):
            TaskInstance.model_validate(self._record(completed_at="2026-06-17T15:00:00Z"))

    def test_empty_plant_link_is_none(self):
        assert TaskInstance.model_validate(self._record(linked_plant_instance_id="")).linked_plant_instance_id is None

    def test_to_document_serializes_utc_without_id(self):
        task = TaskInstance.model_validate(
            self._record(status="completed", completed_at="2026-06-17T11:00:00-04:00")
        )

        document = task.to_document()

        assert "id" not in document
        assert document["completed_at"] == "2026-06-17T15:00:00+00:00"
        assert document["status"] == "completed"

    def test_is_overdue(self):
        task = TaskInstance.model_validate(self._record())

        assert task.is_overdue(datetime(2026, 6, 17, 15, 0, tzinfo=UTC))
        assert not task.is_overdue(datetime(2026, 6, 17, 13, 0, tzinfo=UTC))


@pytest.mark.unit
class TestPlantInstance:
    """Tests for PlantInstance normalization."""

    def test_legacy_string_fields_are_coerced(self):
        plant = PlantInstance.model_validate(
            {
                "id": "p1",
                "userId": "user1",
                "plantId": "s1",
                "waterlevel": "50",
                "carelevel": "120",
                "activeNutrients": '[{"nutrientId": "n1", "nutrientName": "Boost", "timer": 30}]',
                "nutrientsid": ["n1"],
                "nutrients": ["Boost"],
                "dateAdded": "2026-04-01T12:00:00.000Z",
            }
        )

        assert plant.user_id == "user1"
        assert plant.species_id == "s1"
        assert plant.water_level == 50
        assert plant.care_level == 100
        assert plant.active_nutrients == [
            ActiveNutrientEffect(nutrient_id="n1", nutrient_name="Boost", remaining_seconds=30)
        ]
        assert plant.applied_nutrient_ids == ["n1"]
        assert plant.acquired_at == datetime(2026, 4, 1, 12, 0, tzinfo=UTC)

    def test_unparseable_levels_become_zero(self):
        plant = PlantInstance.model_validate({"id": "p1", "user_id": "u", "water_level": "lots"})

        assert plant.water_level == 0

    def test_expired_and_malformed_effects_are_dropped(self):
        plant = PlantInstance.model_validate(
            {
                "id": "p1",
                "user_id": "u",
                "active_nutrients": [
                    {"nutrient_id": "n1", "remaining_seconds": 0},
                    {"nutrient_id": "n2", "remaining_seconds": 4},
                    {"nutrient_id": "n3", "timer": "soon"},
                ],
            }
        )

        assert [e.nutrient_id for e in plant.active_nutrients] == ["n2"]

    def test_invalid_json_effects_become_empty(self):
        plant = PlantInstance.model_validate({"id": "p1", "user_id": "u", "activeNutrients": "{not json"})

        assert plant.active_nutrients == []

    def test_snake_case_wins_over_legacy_alias(self):
        plant = PlantInstance.model_validate(
            {"id": "p1", "user_id": "u", "active_nutrients": [], "activeNutrients": '[{"nutrientId": "x", "timer": 9}]'}
        )

        assert plant.active_nutrients == []


@pytest.mark.unit
class TestCatalogModels:
    """Tests for Nutrient and PlantSpecies."""

    @pytest.mark.parametrize(("raw", "expected"), [("45", 45), (" 12 ", 12), ("abc", 300), ("0", 300), (None, 300)])
    def test_nutrient_timer_coercion(self, raw, expected):
        assert Nutrient.model_validate({"id": "n1", "name": "Boost", "timer": raw}).timer_seconds == expected

    def test_nutrient_timer_missing_uses_default(self):
        assert Nutrient.model_validate({"id": "n1"}).timer_seconds == 300

    def test_nutrient_premium_flag_alias(self):
        assert Nutrient.model_validate({"id": "n1", "isPremium": True}).is_premium is True

    def test_species_watering_frequency(self):
        assert PlantSpecies.model_validate({"id": "s1", "wateringFrequency": 3}).watering_frequency_days == 3
        assert PlantSpecies.model_validate({"id": "s1"}).watering_frequency_days == 7
        assert PlantSpecies.model_validate({"id": "s1", "wateringFrequency": 0}).watering_frequency_days == 7
