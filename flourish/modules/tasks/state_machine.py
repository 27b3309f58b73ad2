"""Pure state transition functions for task instance lifecycle management."""

import logging
from datetime import datetime

from flourish.core.clock import add_days, to_storage
from flourish.core.errors import InvalidStateError
from flourish.core.logging import span
from flourish.domain.task import TaskInstance, TaskStatus
from flourish.modules.tasks.store import TaskInstanceStore


logger = logging.getLogger(__name__)


# Both targets are terminal
TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.COMPLETED, TaskStatus.SKIPPED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.SKIPPED: set(),
}

_VERBS = {
    TaskStatus.COMPLETED: "complete",
    TaskStatus.SKIPPED: "skip",
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    """Whether ``current`` may move to ``target``."""
    return target in TRANSITIONS[current]


def ensure_transition(*, task: TaskInstance, target: TaskStatus) -> None:
    """Raise InvalidStateError unless the task may move to ``target``."""
    if not can_transition(task.status, target):
        msg = f"Cannot {_VERBS.get(target, target)}: task {task.id} is in {task.status} state"
        raise InvalidStateError(msg)


def calculate_next_occurrence(*, completed_at: datetime, recurrence_days: int) -> datetime:
    """Next occurrence floats from completion time, not from the original schedule."""
    return add_days(completed_at, recurrence_days)


async def transition_to_completed(
    *,
    tasks: TaskInstanceStore,
    task: TaskInstance,
    completed_at: datetime,
) -> TaskInstance:
    """Transition a pending task to COMPLETED."""
    with span("task_state_machine.transition_to_completed"):
        ensure_transition(task=task, target=TaskStatus.COMPLETED)

        updated = await tasks.update(
            task.id,
            {"status": TaskStatus.COMPLETED.value, "completed_at": to_storage(completed_at)},
        )

        logger.info("Transitioned task %s to completed", task.id)
        return updated


async def transition_to_skipped(
    *,
    tasks: TaskInstanceStore,
    task: TaskInstance,
    reason: str | None = None,
) -> TaskInstance:
    """Transition a pending task to SKIPPED, storing the reason as its note."""
    with span("task_state_machine.transition_to_skipped"):
        ensure_transition(task=task, target=TaskStatus.SKIPPED)

        updated = await tasks.update(task.id, {"status": TaskStatus.SKIPPED.value, "notes": reason})

        logger.info("Transitioned task %s to skipped", task.id)
        return updated


async def revert_to_pending(*, tasks: TaskInstanceStore, task_id: str) -> TaskInstance:
    """Undo a completion whose follow-up writes failed."""
    with span("task_state_machine.revert_to_pending"):
        reverted = await tasks.update(task_id, {"status": TaskStatus.PENDING.value, "completed_at": None})

        logger.warning("Reverted task %s to pending", task_id)
        return reverted
