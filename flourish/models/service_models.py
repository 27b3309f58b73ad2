"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, pairing stored
records with derived values the UI displays.
"""

import datetime as dt

from pydantic import BaseModel, Field

from flourish.domain.plant import CareType
from flourish.domain.task import TaskInstance, TaskTemplate


class EnrichedTask(BaseModel):
    """Task instance paired with its template."""

    instance: TaskInstance
    template: TaskTemplate

    @property
    def points(self) -> int:
        return self.template.points


class DailyTaskSummary(BaseModel):
    """Tasks scheduled on one local calendar day with status counts."""

    date: dt.date
    tasks: list[EnrichedTask] = Field(default_factory=list)
    completed: int = 0
    pending: int = 0
    overdue: int = 0


class TaskStats(BaseModel):
    """Derived completion statistics for a user."""

    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    overdue_tasks: int
    completion_rate: int = Field(..., ge=0, le=100)
    streak: int
    total_points: int


class CompletionResult(BaseModel):
    """Outcome of completing a task."""

    points: int
    task: TaskInstance
    next_task: TaskInstance | None = None


class CareDue(BaseModel):
    """Next due date for one kind of plant care."""

    care_type: CareType
    due_at: dt.datetime
    overdue: bool


class PlantCareSchedule(BaseModel):
    """Upcoming care dates for a plant."""

    plant_instance_id: str
    next_watering: dt.datetime
    next_fertilizing: dt.datetime
    next_repotting: dt.datetime
    due: list[CareDue] = Field(default_factory=list)
