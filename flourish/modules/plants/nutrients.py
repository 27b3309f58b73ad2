"""Nutrient catalog, application and effect decay."""

import logging

from flourish.core.config import constants, settings
from flourish.core.db_client import DatabaseError, DocumentStore, RecordNotFoundError
from flourish.core.errors import NotFoundError, PersistenceError, PremiumRequiredError
from flourish.core.logging import span
from flourish.core.schema import NUTRIENTS
from flourish.domain.plant import ActiveNutrientEffect, Nutrient, PlantInstance, clamp_level
from flourish.modules.plants.store import PlantInstanceStore


logger = logging.getLogger(__name__)


def decay_effects(effects: list[ActiveNutrientEffect]) -> list[ActiveNutrientEffect]:
    """Advance every effect by one second and drop the ones that expired."""
    decayed = (
        effect.model_copy(update={"remaining_seconds": max(0, effect.remaining_seconds - 1)}) for effect in effects
    )
    return [effect for effect in decayed if effect.remaining_seconds > 0]


def format_remaining(seconds: int | None) -> str:
    """Render a countdown as zero-padded ``MM:SS`` (``None`` and 0 render as ``00:00``)."""
    if not seconds or seconds < 0:
        return "00:00"
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


class NutrientCatalog:
    """Read-only nutrient lookup."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, nutrient_id: str) -> Nutrient:
        """Fetch a nutrient by ID.

        Raises:
            NotFoundError: If the nutrient does not exist
        """
        try:
            record = await self._store.get_record(collection=NUTRIENTS, record_id=nutrient_id)
        except RecordNotFoundError as e:
            msg = f"Nutrient not found: {nutrient_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to load nutrient {nutrient_id}: {e}"
            raise PersistenceError(msg) from e

        return Nutrient.model_validate(record)

    async def list_nutrients(self, *, include_premium: bool = True) -> list[Nutrient]:
        """List nutrients ordered by name."""
        try:
            records = await self._store.list_records(
                collection=NUTRIENTS,
                per_page=constants.DEFAULT_PER_PAGE_LIMIT,
                sort="+name",
            )
        except DatabaseError as e:
            msg = f"Failed to list nutrients: {e}"
            raise PersistenceError(msg) from e

        nutrients = [Nutrient.model_validate(record) for record in records]
        if include_premium:
            return nutrients
        return [n for n in nutrients if not n.is_premium]


class NutrientService:
    """Applies nutrients to plants."""

    def __init__(self, *, store: DocumentStore, level_step: int | None = None) -> None:
        self._level_step = settings.nutrient_level_step if level_step is None else level_step
        self.catalog = NutrientCatalog(store)
        self.plants = PlantInstanceStore(store)

    async def apply_nutrient(
        self,
        plant_instance_id: str,
        nutrient_id: str,
        *,
        user_is_premium: bool = False,
    ) -> PlantInstance:
        """Boost a plant's levels and start a countdown effect for the nutrient.

        Water and care levels each rise by the configured step, clamped to
        [0, 100]. The new effect is appended even when the same nutrient is
        already active, and the nutrient is recorded in the plant's history.

        Args:
            plant_instance_id: Plant receiving the nutrient
            nutrient_id: Nutrient to apply
            user_is_premium: Whether the user holds a premium subscription

        Returns:
            The persisted plant

        Raises:
            NotFoundError: If the nutrient or plant does not exist
            PremiumRequiredError: If the nutrient is premium-only and the user is not premium
            PersistenceError: If the store write fails
        """
        with span("nutrient_service.apply_nutrient"):
            nutrient = await self.catalog.get(nutrient_id)
            plant = await self.plants.get(plant_instance_id)

            if nutrient.is_premium and not user_is_premium:
                msg = f"'{nutrient.name}' requires a premium subscription"
                raise PremiumRequiredError(msg)

            effect = ActiveNutrientEffect(
                nutrient_id=nutrient.id,
                nutrient_name=nutrient.name,
                remaining_seconds=nutrient.timer_seconds,
            )
            updated = plant.model_copy(
                update={
                    "water_level": clamp_level(plant.water_level + self._level_step),
                    "care_level": clamp_level(plant.care_level + self._level_step),
                    "active_nutrients": [*plant.active_nutrients, effect],
                    "applied_nutrient_ids": [*plant.applied_nutrient_ids, nutrient.id],
                    "applied_nutrient_names": [*plant.applied_nutrient_names, nutrient.name],
                }
            )

            saved = await self.plants.save(updated)
            logger.info(
                "Applied nutrient %s to plant %s (%ss)",
                nutrient.id,
                plant_instance_id,
                nutrient.timer_seconds,
            )
            return saved
