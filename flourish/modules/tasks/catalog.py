"""Task catalog: read-mostly templates describing repeatable actions."""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from flourish.core.config import constants
from flourish.core.db_client import DatabaseError, DocumentStore, RecordNotFoundError, sanitize_param
from flourish.core.errors import NotFoundError, PersistenceError
from flourish.core.logging import span
from flourish.core.schema import TASK_TEMPLATES
from flourish.domain.task import TaskCategory, TaskTemplate


logger = logging.getLogger(__name__)


# Templates every fresh catalog starts with
DEFAULT_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "name": "Water your plant",
        "category": TaskCategory.WATERING,
        "description": "Check the soil and water when the top inch is dry.",
        "default_recurrence_days": constants.DEFAULT_WATERING_FREQUENCY_DAYS,
        "points": 10,
    },
    {
        "name": "Fertilize your plant",
        "category": TaskCategory.FERTILIZING,
        "description": "Feed with a balanced fertilizer at half strength.",
        "default_recurrence_days": constants.FERTILIZING_INTERVAL_DAYS,
        "points": 15,
    },
    {
        "name": "Prune dead leaves",
        "category": TaskCategory.PRUNING,
        "description": "Remove yellow or brown leaves at the base.",
        "default_recurrence_days": 14,
        "points": 10,
    },
    {
        "name": "Repot your plant",
        "category": TaskCategory.REPOTTING,
        "description": "Move to a pot one size larger with fresh soil.",
        "default_recurrence_days": constants.REPOTTING_INTERVAL_DAYS,
        "points": 30,
    },
    {
        "name": "Dust the leaves",
        "category": TaskCategory.CLEANING,
        "description": "Wipe leaves with a damp cloth so they can breathe.",
        "default_recurrence_days": 14,
        "points": 5,
    },
    {
        "name": "Drink a glass of water",
        "category": TaskCategory.OTHER,
        "description": "Your plant is not the only one who needs water.",
        "default_recurrence_days": 1,
        "points": 5,
    },
)


class TaskCatalog:
    """Lookup and creation of task templates."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_template(self, template_id: str) -> TaskTemplate:
        """Fetch a template by ID.

        Raises:
            NotFoundError: If the template does not exist
            PersistenceError: If the store read fails
        """
        try:
            record = await self._store.get_record(collection=TASK_TEMPLATES, record_id=template_id)
        except RecordNotFoundError as e:
            msg = f"Task template not found: {template_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to load task template {template_id}: {e}"
            raise PersistenceError(msg) from e

        return TaskTemplate.model_validate(record)

    async def list_templates(self, *, category: TaskCategory | None = None) -> list[TaskTemplate]:
        """List templates, optionally restricted to one category, ordered by name."""
        with span("task_catalog.list_templates"):
            filter_query = f'category = "{sanitize_param(category)}"' if category else ""
            try:
                records = await self._store.list_records(
                    collection=TASK_TEMPLATES,
                    per_page=constants.DEFAULT_PER_PAGE_LIMIT,
                    filter_query=filter_query,
                    sort="+name",
                )
            except DatabaseError as e:
                msg = f"Failed to list task templates: {e}"
                raise PersistenceError(msg) from e

            templates = []
            for record in records:
                try:
                    templates.append(TaskTemplate.model_validate(record))
                except ValidationError as e:
                    logger.warning("Skipping invalid task template %s: %s", record.get("id"), e)
            return templates

    async def create_template(
        self,
        *,
        name: str,
        category: TaskCategory = TaskCategory.OTHER,
        description: str = "",
        recurrence_days: int | None = None,
        points: int = constants.DEFAULT_CUSTOM_TASK_POINTS,
    ) -> TaskTemplate:
        """Create a new template.

        Args:
            name: Display name
            category: Task category
            description: Detailed description
            recurrence_days: Days until the next occurrence after completion (None for one-off)
            points: Points awarded on completion

        Returns:
            The created template

        Raises:
            ValueError: If the template fields are invalid
            PersistenceError: If the store write fails
        """
        with span("task_catalog.create_template"):
            data: dict[str, Any] = {
                "name": name,
                "description": description,
                "category": TaskCategory(category).value,
                "default_recurrence_days": recurrence_days,
                "points": points,
            }
            # pydantic.ValidationError is a ValueError
            TaskTemplate.model_validate({"id": "new", **data})

            try:
                record = await self._store.create_record(collection=TASK_TEMPLATES, data=data)
            except DatabaseError as e:
                msg = f"Failed to create task template '{name}': {e}"
                raise PersistenceError(msg) from e

            logger.info("Created task template: %s (%s)", name, category)
            return TaskTemplate.model_validate(record)

    async def seed(self, templates: Iterable[dict[str, Any]] = DEFAULT_TEMPLATES) -> list[TaskTemplate]:
        """Create templates from raw definitions, skipping names that already exist."""
        existing = {t.name for t in await self.list_templates()}
        created = []
        for definition in templates:
            if definition["name"] in existing:
                continue
            created.append(
                await self.create_template(
                    name=definition["name"],
                    category=definition.get("category", TaskCategory.OTHER),
                    description=definition.get("description", ""),
                    recurrence_days=definition.get("default_recurrence_days"),
                    points=definition.get("points", constants.DEFAULT_CUSTOM_TASK_POINTS),
                )
            )
            existing.add(definition["name"])
        logger.info("Seeded %d task templates", len(created))
        return created
