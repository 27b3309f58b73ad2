"""flourish - task and care progression engine for a plant-growing wellness app.

``Flourish`` wires every service to one document store and clock. Screens
enter it once at startup and call into its services from event handlers.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from flourish.core.clock import Clock, SystemClock
from flourish.core.db_client import DocumentStore, SQLiteDocumentStore
from flourish.core.logging import configure_logfire, log_with_user_context, span
from flourish.domain.plant import PlantInstance
from flourish.modules.plants.care import PlantCareService
from flourish.modules.plants.nutrients import NutrientService
from flourish.modules.plants.timer import NutrientTimerController
from flourish.modules.tasks.engine import ProgressionEngine


logger = logging.getLogger(__name__)


class Flourish:
    """Service container sharing one store, clock and scheduler."""

    def __init__(
        self,
        *,
        store: DocumentStore,
        clock: Clock | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncIOScheduler()
        self.plant_care = PlantCareService(store=store, clock=self.clock)
        self.engine = ProgressionEngine(store=store, clock=self.clock, care_signal=self.plant_care)
        self.nutrients = NutrientService(store=store)
        self._timers: dict[str, NutrientTimerController] = {}

    def timer_controller(self, view_id: str) -> NutrientTimerController:
        """The nutrient timer controller of one mounted view, created on first use."""
        if view_id not in self._timers:
            self._timers[view_id] = NutrientTimerController(
                store=self.store,
                scheduler=self.scheduler,
                view_id=view_id,
            )
        return self._timers[view_id]

    def release_view(self, view_id: str) -> None:
        """Stop the timer of an unmounted view."""
        controller = self._timers.pop(view_id, None)
        if controller is not None:
            controller.clear_selection()

    @property
    def timers(self) -> list[NutrientTimerController]:
        """Controllers of every mounted view."""
        return list(self._timers.values())

    async def apply_nutrient(
        self,
        plant_instance_id: str,
        nutrient_id: str,
        *,
        user_is_premium: bool = False,
    ) -> PlantInstance:
        """Apply a nutrient and hand the saved plant to any view ticking it.

        Raises:
            NotFoundError: If the nutrient or plant does not exist
            PremiumRequiredError: If the nutrient is premium-only and the user is not premium
            PersistenceError: If the store write fails
        """
        plant = await self.nutrients.apply_nutrient(
            plant_instance_id, nutrient_id, user_is_premium=user_is_premium
        )
        for controller in self.timers:
            controller.refresh(plant)
        return plant

    async def add_plant(self, *, user_id: str, species_id: str, notes: str = "") -> PlantInstance:
        """Add a plant to a user's collection and schedule its first care tasks.

        Args:
            user_id: Owning user
            species_id: Species from the plant catalog
            notes: Initial care journal text

        Returns:
            The created plant

        Raises:
            NotFoundError: If the species does not exist
            PersistenceError: If a store write fails
        """
        with span("flourish.add_plant"):
            species = await self.plant_care.species.get(species_id)
            plant = await self.plant_care.plants.create(
                user_id=user_id,
                species_id=species.id,
                acquired_at=self.clock.now(),
                notes=notes,
            )
            tasks = await self.engine.create_default_care_tasks(
                user_id=user_id,
                plant_instance_id=plant.id,
                watering_frequency_days=species.watering_frequency_days,
            )
            log_with_user_context(
                logger,
                "info",
                "Plant added",
                user_id=user_id,
                plant_instance_id=plant.id,
                care_tasks=len(tasks),
            )
            return plant

    async def seed_catalog(self) -> None:
        """Create the default task templates missing from the catalog."""
        await self.engine.catalog.seed()

    def shutdown(self) -> None:
        """Cancel every timer and stop the scheduler."""
        for view_id in list(self._timers):
            self.release_view(view_id)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


@asynccontextmanager
async def lifespan(db_path: str | None = None, clock: Clock | None = None) -> AsyncIterator[Flourish]:
    """Application lifespan: logging, store, catalog seed and teardown."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    async with SQLiteDocumentStore(db_path=db_path) as store:
        app = Flourish(store=store, clock=clock)
        await app.seed_catalog()
        logger.info("Flourish started")
        try:
            yield app
        finally:
            app.shutdown()
            logger.info("Flourish stopped")
