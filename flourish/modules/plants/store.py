"""Plant instance and species persistence."""

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from flourish.core.clock import to_storage
from flourish.core.config import constants
from flourish.core.db_client import DatabaseError, DocumentStore, RecordNotFoundError, sanitize_param
from flourish.core.errors import NotFoundError, PersistenceError
from flourish.core.schema import PLANT_INSTANCES, PLANT_SPECIES
from flourish.domain.plant import ActiveNutrientEffect, PlantInstance, PlantSpecies, clamp_level


logger = logging.getLogger(__name__)


class PlantInstanceStore:
    """Reads and writes a user's plants."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, plant_instance_id: str) -> PlantInstance:
        """Fetch a plant by ID, normalizing legacy fields.

        Raises:
            NotFoundError: If the plant does not exist
            PersistenceError: If the store read fails or the document is invalid
        """
        try:
            record = await self._store.get_record(collection=PLANT_INSTANCES, record_id=plant_instance_id)
        except RecordNotFoundError as e:
            msg = f"Plant instance not found: {plant_instance_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to load plant instance {plant_instance_id}: {e}"
            raise PersistenceError(msg) from e

        try:
            return PlantInstance.model_validate(record)
        except ValidationError as e:
            msg = f"Stored plant instance {plant_instance_id} is invalid: {e}"
            raise PersistenceError(msg) from e

    async def list_for_user(self, user_id: str) -> list[PlantInstance]:
        """List a user's plants."""
        try:
            records = await self._store.list_records(
                collection=PLANT_INSTANCES,
                per_page=constants.DEFAULT_PER_PAGE_LIMIT,
                filter_query=f'user_id = "{sanitize_param(user_id)}"',
            )
        except DatabaseError as e:
            msg = f"Failed to list plants for user {user_id}: {e}"
            raise PersistenceError(msg) from e

        plants = []
        for record in records:
            try:
                plants.append(PlantInstance.model_validate(record))
            except ValidationError as e:
                logger.warning("Skipping invalid plant instance %s: %s", record.get("id"), e)
        return plants

    async def create(
        self,
        *,
        user_id: str,
        species_id: str,
        acquired_at: datetime,
        water_level: int = constants.MIN_LEVEL,
        care_level: int = constants.MIN_LEVEL,
        notes: str = "",
    ) -> PlantInstance:
        """Add a plant to a user's collection."""
        data = {
            "user_id": user_id,
            "species_id": species_id,
            "water_level": clamp_level(water_level),
            "care_level": clamp_level(care_level),
            "active_nutrients": [],
            "applied_nutrient_ids": [],
            "applied_nutrient_names": [],
            "acquired_at": to_storage(acquired_at),
            "notes": notes,
        }
        try:
            record = await self._store.create_record(collection=PLANT_INSTANCES, data=data)
        except DatabaseError as e:
            msg = f"Failed to create plant for user {user_id}: {e}"
            raise PersistenceError(msg) from e

        logger.info("Added plant %s (species %s) for user %s", record["id"], species_id, user_id)
        return PlantInstance.model_validate(record)

    async def update(self, plant_instance_id: str, data: dict[str, Any]) -> PlantInstance:
        """Apply a partial update and return the stored result."""
        try:
            record = await self._store.update_record(
                collection=PLANT_INSTANCES, record_id=plant_instance_id, data=data
            )
        except RecordNotFoundError as e:
            msg = f"Plant instance not found: {plant_instance_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to update plant instance {plant_instance_id}: {e}"
            raise PersistenceError(msg) from e

        return PlantInstance.model_validate(record)

    async def save(self, plant: PlantInstance) -> PlantInstance:
        """Persist the full plant document."""
        return await self.update(plant.id, plant.to_document())

    async def save_effects(self, plant_instance_id: str, effects: list[ActiveNutrientEffect]) -> None:
        """Persist only the active effect list."""
        await self.update(
            plant_instance_id,
            {"active_nutrients": [effect.model_dump(mode="json") for effect in effects]},
        )


class SpeciesCatalog:
    """Read-only plant species lookup."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, species_id: str) -> PlantSpecies:
        """Fetch a species by ID.

        Raises:
            NotFoundError: If the species does not exist
        """
        try:
            record = await self._store.get_record(collection=PLANT_SPECIES, record_id=species_id)
        except RecordNotFoundError as e:
            msg = f"Plant species not found: {species_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to load plant species {species_id}: {e}"
            raise PersistenceError(msg) from e

        return PlantSpecies.model_validate(record)
