"""Plant care: care-signal handling, care schedules and recommendations."""

import logging
from datetime import datetime
from typing import Any, Protocol

from flourish.core.clock import Clock, SystemClock, add_days, local_date, to_local, to_storage
from flourish.core.config import constants
from flourish.core.db_client import DocumentStore
from flourish.core.logging import span
from flourish.domain.plant import CareType, PlantInstance
from flourish.models.service_models import CareDue, PlantCareSchedule
from flourish.modules.plants.store import PlantInstanceStore, SpeciesCatalog


logger = logging.getLogger(__name__)


class PlantCareSignal(Protocol):
    """Receiver of care actions fired when a plant-linked task completes."""

    async def update_care(self, plant_instance_id: str, care_type: CareType) -> Any:
        """Record that a care action happened now."""
        ...


_LAST_CARE_FIELD: dict[CareType, str] = {
    CareType.WATER: "last_watered",
    CareType.FERTILIZE: "last_fertilized",
    CareType.REPOT: "last_repotted",
}

_RECOMMENDATIONS: dict[CareType, str] = {
    CareType.WATER: "Your plant needs water! Check the soil moisture.",
    CareType.FERTILIZE: "Time to fertilize for healthy growth.",
    CareType.REPOT: "Consider repotting if roots are crowded.",
}


class PlantCareService:
    """Records care actions on plants and derives their care schedule."""

    def __init__(self, *, store: DocumentStore, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self.plants = PlantInstanceStore(store)
        self.species = SpeciesCatalog(store)

    async def update_care(
        self,
        plant_instance_id: str,
        care_type: CareType,
        notes: str | None = None,
    ) -> PlantInstance:
        """Stamp the matching last-care timestamp with now.

        Args:
            plant_instance_id: Plant that received care
            care_type: water, fertilize or repot
            notes: Optional journal entry appended as ``[YYYY-MM-DD] care_type: notes``

        Returns:
            The updated plant

        Raises:
            NotFoundError: If the plant does not exist
            PersistenceError: If the store write fails
        """
        with span("plant_care.update_care"):
            care_type = CareType(care_type)
            now = self._clock.now()
            update_data: dict[str, Any] = {_LAST_CARE_FIELD[care_type]: to_storage(now)}

            if notes:
                plant = await self.plants.get(plant_instance_id)
                entry = f"[{local_date(now, self._clock.tz).isoformat()}] {care_type}: {notes}"
                update_data["notes"] = f"{plant.notes}\n\n{entry}".strip()

            updated = await self.plants.update(plant_instance_id, update_data)
            logger.info("Recorded %s care for plant %s", care_type, plant_instance_id)
            return updated

    async def get_care_schedule(self, plant_instance_id: str) -> PlantCareSchedule:
        """Next watering, fertilizing and repotting dates for a plant.

        Each interval starts from the last time that care happened, or from the
        acquisition date when it never has.

        Raises:
            NotFoundError: If the plant or its species does not exist
        """
        with span("plant_care.get_care_schedule"):
            plant = await self.plants.get(plant_instance_id)
            species = await self.species.get(plant.species_id)
            now = self._clock.now()

            def since(last: datetime | None) -> datetime:
                return to_local(last or plant.acquired_at or now, self._clock.tz)

            next_watering = add_days(since(plant.last_watered), species.watering_frequency_days)
            next_fertilizing = add_days(since(plant.last_fertilized), constants.FERTILIZING_INTERVAL_DAYS)
            next_repotting = add_days(since(plant.last_repotted), constants.REPOTTING_INTERVAL_DAYS)

            return PlantCareSchedule(
                plant_instance_id=plant.id,
                next_watering=next_watering,
                next_fertilizing=next_fertilizing,
                next_repotting=next_repotting,
                due=[
                    CareDue(care_type=CareType.WATER, due_at=next_watering, overdue=next_watering < now),
                    CareDue(care_type=CareType.FERTILIZE, due_at=next_fertilizing, overdue=next_fertilizing < now),
                    CareDue(care_type=CareType.REPOT, due_at=next_repotting, overdue=next_repotting < now),
                ],
            )

    async def get_care_recommendations(self, plant_instance_id: str) -> list[str]:
        """One recommendation per overdue kind of care."""
        schedule = await self.get_care_schedule(plant_instance_id)
        return [_RECOMMENDATIONS[due.care_type] for due in schedule.due if due.overdue]
