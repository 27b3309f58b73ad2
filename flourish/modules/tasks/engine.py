"""Progression engine: task views, completion, recurrence and statistics."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from flourish.core.clock import Clock, SystemClock, add_days, local_date, start_of_date, start_of_local_day
from flourish.core.config import constants, settings
from flourish.core.db_client import DocumentStore
from flourish.core.errors import FlourishError, NotFoundError
from flourish.core.logging import log_with_user_context, span
from flourish.domain.plant import CareType
from flourish.domain.task import TaskCategory, TaskInstance, TaskStatus, TaskTemplate
from flourish.models.service_models import CompletionResult, DailyTaskSummary, EnrichedTask, TaskStats
from flourish.modules.plants.care import PlantCareSignal
from flourish.modules.tasks import analytics, state_machine
from flourish.modules.tasks.catalog import TaskCatalog
from flourish.modules.tasks.store import TaskInstanceStore


logger = logging.getLogger(__name__)


# Categories without an entry do not touch the plant
CATEGORY_CARE: dict[TaskCategory, CareType] = {
    TaskCategory.WATERING: CareType.WATER,
    TaskCategory.FERTILIZING: CareType.FERTILIZE,
    TaskCategory.REPOTTING: CareType.REPOT,
}


class ProgressionEngine:
    """Turns task instances and templates into views, completions and stats.

    Usage:
        engine = ProgressionEngine(store=store, care_signal=PlantCareService(store=store))
        result = await engine.complete_task(task_id)
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        clock: Clock | None = None,
        care_signal: PlantCareSignal | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._care_signal = care_signal
        self.catalog = TaskCatalog(store)
        self.tasks = TaskInstanceStore(store)

    async def _enrich(self, instances: Iterable[TaskInstance]) -> list[EnrichedTask]:
        """Pair instances with templates, dropping instances whose template is gone."""
        templates: dict[str, TaskTemplate | None] = {}
        enriched = []
        for instance in instances:
            if instance.template_id not in templates:
                try:
                    templates[instance.template_id] = await self.catalog.get_template(instance.template_id)
                except NotFoundError:
                    logger.warning(
                        "Dropping task %s: template %s not found", instance.id, instance.template_id
                    )
                    templates[instance.template_id] = None

            template = templates[instance.template_id]
            if template is not None:
                enriched.append(EnrichedTask(instance=instance, template=template))
        return enriched

    async def get_tasks_in_range(self, user_id: str, start: datetime, end: datetime) -> list[EnrichedTask]:
        """Enriched tasks with ``start <= scheduled_at < end``, ascending by scheduled_at."""
        with span("progression_engine.get_tasks_in_range"):
            instances = await self.tasks.list_for_user(user_id, start=start, end=end)
            return await self._enrich(instances)

    async def get_today_tasks(self, user_id: str) -> list[EnrichedTask]:
        """Tasks scheduled during the current local calendar day."""
        now = self._clock.now()
        start = start_of_local_day(now, self._clock.tz)
        end = start_of_date(start.date() + timedelta(days=1), self._clock.tz)
        return await self.get_tasks_in_range(user_id, start, end)

    async def get_upcoming_summary(self, user_id: str, days: int | None = None) -> list[DailyTaskSummary]:
        """One bucket per local day from today through today + days - 1, empty days included.

        Args:
            user_id: Owning user
            days: Number of days to cover (defaults to settings.upcoming_days_default)

        Returns:
            Summaries in date order
        """
        with span("progression_engine.get_upcoming_summary"):
            days = settings.upcoming_days_default if days is None else days
            if days <= 0:
                return []

            tz = self._clock.tz
            now = self._clock.now()
            today = local_date(now, tz)
            dates = [today + timedelta(days=offset) for offset in range(days)]
            buckets = {day: DailyTaskSummary(date=day) for day in dates}

            tasks = await self.get_tasks_in_range(
                user_id,
                start_of_date(dates[0], tz),
                start_of_date(dates[-1] + timedelta(days=1), tz),
            )

            for task in tasks:
                bucket = buckets.get(local_date(task.instance.scheduled_at, tz))
                if bucket is None:
                    continue
                bucket.tasks.append(task)
                if task.instance.status == TaskStatus.COMPLETED:
                    bucket.completed += 1
                elif task.instance.is_overdue(now):
                    bucket.overdue += 1
                elif task.instance.status == TaskStatus.PENDING:
                    bucket.pending += 1

            return [buckets[day] for day in dates]

    async def complete_task(self, task_id: str) -> CompletionResult:
        """Complete a pending task, schedule its next occurrence and signal plant care.

        Args:
            task_id: Task instance to complete

        Returns:
            Points awarded, the completed instance and the next occurrence (if one was created)

        Raises:
            NotFoundError: If the instance or its template does not exist
            InvalidStateError: If the instance is not pending (it is left unchanged)
            PersistenceError: If a store write fails; the instance is back to pending
        """
        with span("progression_engine.complete_task"):
            task = await self.tasks.get(task_id)
            state_machine.ensure_transition(task=task, target=TaskStatus.COMPLETED)
            template = await self.catalog.get_template(task.template_id)

            now = self._clock.now()
            completed = await state_machine.transition_to_completed(tasks=self.tasks, task=task, completed_at=now)

            next_task = None
            if template.default_recurrence_days:
                try:
                    next_task = await self._schedule_next_occurrence(
                        completed,
                        completed_at=now,
                        recurrence_days=template.default_recurrence_days,
                    )
                except FlourishError:
                    await self._rollback_completion(task.id)
                    raise

            if completed.linked_plant_instance_id:
                await self._signal_plant_care(completed.linked_plant_instance_id, template.category)

            log_with_user_context(
                logger,
                "info",
                "Task completed",
                user_id=completed.user_id,
                task_id=completed.id,
                points=template.points,
            )
            return CompletionResult(points=template.points, task=completed, next_task=next_task)

    async def _schedule_next_occurrence(
        self,
        completed: TaskInstance,
        *,
        completed_at: datetime,
        recurrence_days: int,
    ) -> TaskInstance | None:
        """Create the next pending instance unless one is already waiting in the future."""
        upcoming = await self.tasks.list_for_user(
            completed.user_id,
            start=completed_at,
            status=TaskStatus.PENDING,
            template_id=completed.template_id,
        )
        if any(t.linked_plant_instance_id == completed.linked_plant_instance_id for t in upcoming):
            logger.info(
                "Skipping next occurrence of template %s for user %s: one is already scheduled",
                completed.template_id,
                completed.user_id,
            )
            return None

        return await self.tasks.create(
            template_id=completed.template_id,
            user_id=completed.user_id,
            scheduled_at=state_machine.calculate_next_occurrence(
                completed_at=completed_at,
                recurrence_days=recurrence_days,
            ),
            plant_instance_id=completed.linked_plant_instance_id,
            reminder_enabled=completed.reminder_enabled,
        )

    async def _rollback_completion(self, task_id: str) -> None:
        try:
            await state_machine.revert_to_pending(tasks=self.tasks, task_id=task_id)
        except FlourishError as e:
            logger.error("Failed to revert completed task %s: %s", task_id, e)

    async def _signal_plant_care(self, plant_instance_id: str, category: TaskCategory) -> None:
        care_type = CATEGORY_CARE.get(category)
        if care_type is None or self._care_signal is None:
            return

        try:
            await self._care_signal.update_care(plant_instance_id, care_type)
        except Exception as e:
            # The completion itself is already persisted
            logger.warning("Failed to record %s care for plant %s: %s", care_type, plant_instance_id, e)

    async def skip_task(self, task_id: str, reason: str | None = None) -> TaskInstance:
        """Skip a pending task, storing the reason as its note. No recurrence is generated.

        Raises:
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not pending
        """
        with span("progression_engine.skip_task"):
            task = await self.tasks.get(task_id)
            return await state_machine.transition_to_skipped(tasks=self.tasks, task=task, reason=reason)

    async def compute_stats(self, user_id: str) -> TaskStats:
        """Derive statistics from a fresh read of all the user's tasks."""
        with span("progression_engine.compute_stats"):
            instances = await self.tasks.list_for_user(user_id)
            now = self._clock.now()

            completed = [t for t in instances if t.status == TaskStatus.COMPLETED]
            pending = [t for t in instances if t.status == TaskStatus.PENDING]
            overdue = [t for t in pending if t.is_overdue(now)]

            points: dict[str, int] = {}
            for task in completed:
                if task.template_id not in points:
                    try:
                        template = await self.catalog.get_template(task.template_id)
                        points[task.template_id] = template.points
                    except NotFoundError:
                        points[task.template_id] = 0

            stats = TaskStats(
                total_tasks=len(instances),
                completed_tasks=len(completed),
                pending_tasks=len(pending),
                overdue_tasks=len(overdue),
                completion_rate=analytics.completion_rate(len(completed), len(instances)),
                streak=analytics.calculate_streak(
                    (t.completed_at for t in completed if t.completed_at is not None),
                    today=local_date(now, self._clock.tz),
                    tz=self._clock.tz,
                ),
                total_points=sum(points[t.template_id] for t in completed),
            )
            log_with_user_context(logger, "debug", "Computed task stats", user_id=user_id, streak=stats.streak)
            return stats

    async def schedule_task(
        self,
        *,
        user_id: str,
        template_id: str,
        scheduled_at: datetime,
        plant_instance_id: str | None = None,
        reminder_enabled: bool = True,
    ) -> TaskInstance:
        """Schedule a pending instance of an existing template.

        Raises:
            NotFoundError: If the template does not exist
        """
        with span("progression_engine.schedule_task"):
            await self.catalog.get_template(template_id)
            return await self.tasks.create(
                template_id=template_id,
                user_id=user_id,
                scheduled_at=scheduled_at,
                plant_instance_id=plant_instance_id,
                reminder_enabled=reminder_enabled,
            )

    async def create_custom_task(
        self,
        *,
        user_id: str,
        name: str,
        scheduled_at: datetime,
        category: TaskCategory = TaskCategory.OTHER,
        description: str = "",
        recurrence_days: int | None = None,
        points: int = constants.DEFAULT_CUSTOM_TASK_POINTS,
        plant_instance_id: str | None = None,
        reminder_enabled: bool = True,
    ) -> EnrichedTask:
        """Create a user-defined template and schedule its first occurrence."""
        with span("progression_engine.create_custom_task"):
            template = await self.catalog.create_template(
                name=name,
                category=category,
                description=description,
                recurrence_days=recurrence_days,
                points=points,
            )
            instance = await self.tasks.create(
                template_id=template.id,
                user_id=user_id,
                scheduled_at=scheduled_at,
                plant_instance_id=plant_instance_id,
                reminder_enabled=reminder_enabled,
            )
            return EnrichedTask(instance=instance, template=template)

    async def delete_task(self, task_id: str) -> None:
        """Delete a task instance at the user's request."""
        with span("progression_engine.delete_task"):
            await self.tasks.delete(task_id)

    async def get_task_templates(self, category: TaskCategory | None = None) -> list[TaskTemplate]:
        return await self.catalog.list_templates(category=category)

    async def create_default_care_tasks(
        self,
        *,
        user_id: str,
        plant_instance_id: str,
        watering_frequency_days: int = constants.DEFAULT_WATERING_FREQUENCY_DAYS,
    ) -> list[TaskInstance]:
        """Schedule the first watering and fertilizing tasks for a newly added plant.

        Categories with no template in the catalog are skipped.
        """
        with span("progression_engine.create_default_care_tasks"):
            now = self._clock.now()
            plan = [
                (TaskCategory.WATERING, add_days(now, watering_frequency_days)),
                (TaskCategory.FERTILIZING, add_days(now, constants.FERTILIZING_INTERVAL_DAYS)),
            ]

            created = []
            for category, scheduled_at in plan:
                templates = await self.catalog.list_templates(category=category)
                if not templates:
                    logger.info("No %s template in catalog; skipping default task", category)
                    continue
                created.append(
                    await self.tasks.create(
                        template_id=templates[0].id,
                        user_id=user_id,
                        scheduled_at=scheduled_at,
                        plant_instance_id=plant_instance_id,
                    )
                )
            return created
