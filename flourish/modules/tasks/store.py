"""Task instance persistence."""

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from flourish.core.clock import to_storage
from flourish.core.config import constants
from flourish.core.db_client import DatabaseError, DocumentStore, RecordNotFoundError, sanitize_param
from flourish.core.errors import NotFoundError, PersistenceError
from flourish.core.schema import TASK_INSTANCES
from flourish.domain.task import TaskInstance, TaskStatus


logger = logging.getLogger(__name__)


def _parse_instances(records: list[dict[str, Any]]) -> list[TaskInstance]:
    instances = []
    for record in records:
        try:
            instances.append(TaskInstance.model_validate(record))
        except ValidationError as e:
            logger.warning("Skipping invalid task instance %s: %s", record.get("id"), e)
    return instances


class TaskInstanceStore:
    """Reads and writes task instances in the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, task_id: str) -> TaskInstance:
        """Fetch a task instance by ID.

        Raises:
            NotFoundError: If the instance does not exist
            PersistenceError: If the store read fails or the document is invalid
        """
        try:
            record = await self._store.get_record(collection=TASK_INSTANCES, record_id=task_id)
        except RecordNotFoundError as e:
            msg = f"Task instance not found: {task_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to load task instance {task_id}: {e}"
            raise PersistenceError(msg) from e

        try:
            return TaskInstance.model_validate(record)
        except ValidationError as e:
            msg = f"Stored task instance {task_id} is invalid: {e}"
            raise PersistenceError(msg) from e

    async def list_for_user(
        self,
        user_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        status: TaskStatus | None = None,
        template_id: str | None = None,
    ) -> list[TaskInstance]:
        """List a user's task instances ascending by scheduled_at.

        Args:
            user_id: Owning user
            start: Inclusive lower bound on scheduled_at
            end: Exclusive upper bound on scheduled_at
            status: Restrict to one status
            template_id: Restrict to one template

        Returns:
            Every matching instance (all pages)
        """
        filters = [f'user_id = "{sanitize_param(user_id)}"']
        if start is not None:
            filters.append(f'scheduled_at >= "{to_storage(start)}"')
        if end is not None:
            filters.append(f'scheduled_at < "{to_storage(end)}"')
        if status is not None:
            filters.append(f'status = "{sanitize_param(status)}"')
        if template_id is not None:
            filters.append(f'template_id = "{sanitize_param(template_id)}"')

        records = await self._list_all(" && ".join(filters))
        return sorted(_parse_instances(records), key=lambda t: t.scheduled_at)

    async def _list_all(self, filter_query: str) -> list[dict[str, Any]]:
        per_page = constants.DEFAULT_PER_PAGE_LIMIT
        records: list[dict[str, Any]] = []
        page = 1
        try:
            while True:
                batch = await self._store.list_records(
                    collection=TASK_INSTANCES,
                    page=page,
                    per_page=per_page,
                    filter_query=filter_query,
                    sort="+scheduled_at",
                )
                records.extend(batch)
                if len(batch) < per_page:
                    return records
                page += 1
        except DatabaseError as e:
            msg = f"Failed to list task instances: {e}"
            raise PersistenceError(msg) from e

    async def create(
        self,
        *,
        template_id: str,
        user_id: str,
        scheduled_at: datetime,
        plant_instance_id: str | None = None,
        reminder_enabled: bool = True,
    ) -> TaskInstance:
        """Create a pending task instance."""
        data: dict[str, Any] = {
            "template_id": template_id,
            "user_id": user_id,
            "linked_plant_instance_id": plant_instance_id,
            "scheduled_at": to_storage(scheduled_at),
            "completed_at": None,
            "status": TaskStatus.PENDING.value,
            "notes": None,
            "reminder_enabled": reminder_enabled,
        }
        try:
            record = await self._store.create_record(collection=TASK_INSTANCES, data=data)
        except DatabaseError as e:
            msg = f"Failed to create task instance for template {template_id}: {e}"
            raise PersistenceError(msg) from e

        logger.info("Scheduled task %s for user %s at %s", record["id"], user_id, data["scheduled_at"])
        return TaskInstance.model_validate(record)

    async def update(self, task_id: str, data: dict[str, Any]) -> TaskInstance:
        """Apply a partial update and return the stored result."""
        try:
            record = await self._store.update_record(collection=TASK_INSTANCES, record_id=task_id, data=data)
        except RecordNotFoundError as e:
            msg = f"Task instance not found: {task_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to update task instance {task_id}: {e}"
            raise PersistenceError(msg) from e

        return TaskInstance.model_validate(record)

    async def delete(self, task_id: str) -> None:
        """Delete a task instance."""
        try:
            await self._store.delete_record(collection=TASK_INSTANCES, record_id=task_id)
        except RecordNotFoundError as e:
            msg = f"Task instance not found: {task_id}"
            raise NotFoundError(msg) from e
        except DatabaseError as e:
            msg = f"Failed to delete task instance {task_id}: {e}"
            raise PersistenceError(msg) from e

        logger.info("Deleted task instance %s", task_id)
