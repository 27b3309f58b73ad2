"""Per-plant nutrient countdown driven by an APScheduler interval job.

Only the plant currently on screen ticks. Selecting another plant cancels the
running job before the next one is scheduled, so a controller never owns more
than one job.
"""

import logging

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from flourish.core.config import constants, settings
from flourish.core.db_client import DocumentStore
from flourish.core.errors import FlourishError
from flourish.domain.plant import ActiveNutrientEffect, PlantInstance
from flourish.modules.plants.nutrients import decay_effects, format_remaining
from flourish.modules.plants.store import PlantInstanceStore


logger = logging.getLogger(__name__)


class NutrientTimer:
    """In-memory countdown for one plant's active effects.

    The local list is authoritative for display. A tick writes only when the
    decayed list differs from what was last persisted; a failed write leaves
    the persisted snapshot untouched so the next tick tries again.
    """

    def __init__(self, *, plants: PlantInstanceStore, plant: PlantInstance) -> None:
        self._plants = plants
        self.plant_instance_id = plant.id
        self._effects: list[ActiveNutrientEffect] = list(plant.active_nutrients)
        self._persisted: list[ActiveNutrientEffect] = list(plant.active_nutrients)

    @property
    def effects(self) -> list[ActiveNutrientEffect]:
        return list(self._effects)

    def remaining_display(self) -> dict[str, str]:
        """``MM:SS`` per active nutrient, keeping the longest countdown per nutrient."""
        display: dict[str, int] = {}
        for effect in self._effects:
            display[effect.nutrient_id] = max(display.get(effect.nutrient_id, 0), effect.remaining_seconds)
        return {nutrient_id: format_remaining(seconds) for nutrient_id, seconds in display.items()}

    def sync(self, plant: PlantInstance) -> None:
        """Adopt the effect list of a freshly saved copy of this plant."""
        if plant.id != self.plant_instance_id:
            msg = f"Timer for plant {self.plant_instance_id} cannot adopt plant {plant.id}"
            raise ValueError(msg)
        self._effects = list(plant.active_nutrients)
        self._persisted = list(plant.active_nutrients)

    async def tick(self) -> list[ActiveNutrientEffect]:
        """Advance the countdown one second and persist the list if it changed."""
        self._effects = decay_effects(self._effects)

        if self._effects == self._persisted:
            return self.effects

        try:
            await self._plants.save_effects(self.plant_instance_id, self._effects)
        except FlourishError as e:
            logger.warning("Failed to persist nutrient timers for plant %s: %s", self.plant_instance_id, e)
            return self.effects

        self._persisted = list(self._effects)
        logger.debug(
            "Persisted %d active nutrients for plant %s", len(self._effects), self.plant_instance_id
        )
        return self.effects


class TimerHandle:
    """Cancellation handle for a scheduled nutrient timer job."""

    def __init__(self, *, scheduler: AsyncIOScheduler, job_id: str, timer: NutrientTimer) -> None:
        self._scheduler = scheduler
        self.job_id = job_id
        self.timer = timer
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        """Remove the job. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        try:
            self._scheduler.remove_job(self.job_id)
        except JobLookupError:
            logger.debug("Nutrient timer job %s already removed", self.job_id)
        logger.info("Cancelled nutrient timer for plant %s", self.timer.plant_instance_id)


class NutrientTimerController:
    """Owns the single ticking timer of one mounted greenhouse view.

    Usage:
        controller = NutrientTimerController(store=store, view_id="greenhouse")
        handle = await controller.select_plant(plant_id)
        ...
        controller.clear_selection()
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        scheduler: AsyncIOScheduler | None = None,
        view_id: str = "default",
        tick_seconds: float | None = None,
    ) -> None:
        self._plants = PlantInstanceStore(store)
        self._scheduler = scheduler or AsyncIOScheduler()
        self._job_id = f"{constants.NUTRIENT_TIMER_JOB_PREFIX}:{view_id}"
        self._tick_seconds = settings.nutrient_tick_seconds if tick_seconds is None else tick_seconds
        self._handle: TimerHandle | None = None

    @property
    def handle(self) -> TimerHandle | None:
        """Handle of the running timer, if a plant is selected."""
        return self._handle

    async def select_plant(self, plant_instance_id: str) -> TimerHandle:
        """Stop any running timer and start ticking the given plant.

        Raises:
            NotFoundError: If the plant does not exist (no timer is left running)
        """
        self.clear_selection()

        plant = await self._plants.get(plant_instance_id)
        timer = NutrientTimer(plants=self._plants, plant=plant)

        self._scheduler.add_job(
            timer.tick,
            trigger=IntervalTrigger(seconds=self._tick_seconds),
            id=self._job_id,
            name=f"Nutrient timer for plant {plant_instance_id}",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()

        self._handle = TimerHandle(scheduler=self._scheduler, job_id=self._job_id, timer=timer)
        logger.info("Started nutrient timer for plant %s", plant_instance_id)
        return self._handle

    def refresh(self, plant: PlantInstance) -> bool:
        """Hand a just-saved plant to the running timer if that plant is selected."""
        if self._handle is None or self._handle.timer.plant_instance_id != plant.id:
            return False
        self._handle.timer.sync(plant)
        logger.debug("Refreshed nutrient timer for plant %s", plant.id)
        return True

    def clear_selection(self) -> None:
        """Cancel the running timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def shutdown(self) -> None:
        """Cancel the timer and stop the scheduler."""
        self.clear_selection()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
