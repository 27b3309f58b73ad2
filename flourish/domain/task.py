"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from flourish.core.clock import parse_timestamp, to_storage


class TaskCategory(StrEnum):
    """Kind of wellness or plant-care action a template describes."""

    WATERING = "watering"
    FERTILIZING = "fertilizing"
    PRUNING = "pruning"
    REPOTTING = "repotting"
    CLEANING = "cleaning"
    OTHER = "other"


class TaskStatus(StrEnum):
    """Task instance lifecycle state."""

    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class TaskTemplate(BaseModel):
    """Catalog entry describing a repeatable action and its point value."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique template ID from the document store")
    name: str = Field(..., description="Display name (e.g., 'Water your plant')")
    description: str = Field(default="", description="Detailed task description")
    category: TaskCategory = Field(default=TaskCategory.OTHER, description="Task category")
    default_recurrence_days: int | None = Field(
        default=None,
        gt=0,
        description="Days until the next occurrence after completion (None = one-off)",
    )
    points: int = Field(default=10, ge=0, description="Points awarded on completion")

    @field_validator("category", mode="before")
    @classmethod
    def coerce_unknown_category(cls, v: Any) -> Any:
        """Map unrecognized categories to OTHER."""
        if isinstance(v, str) and v.lower() not in {c.value for c in TaskCategory}:
            return TaskCategory.OTHER
        return v.lower() if isinstance(v, str) else v

    @field_validator("default_recurrence_days", mode="before")
    @classmethod
    def blank_recurrence_is_none(cls, v: Any) -> Any:
        """Treat empty and zero recurrence values as one-off."""
        if v in ("", 0, "0"):
            return None
        return v


class TaskInstance(BaseModel):
    """A dated, user-owned occurrence of a task template."""

    id: str = Field(..., description="Unique instance ID from the document store")
    template_id: str = Field(..., description="ID of the template this instance schedules")
    user_id: str = Field(..., description="Owning user ID")
    linked_plant_instance_id: str | None = Field(default=None, description="Plant this task cares for")
    scheduled_at: datetime = Field(..., description="When the task is due")
    completed_at: datetime | None = Field(default=None, description="When the task was completed")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Lifecycle state")
    notes: str | None = Field(default=None, description="Free-text notes (skip reason, etc.)")
    reminder_enabled: bool = Field(default=True, description="Whether reminders fire for this task")

    @field_validator("scheduled_at", "completed_at", mode="before")
    @classmethod
    def parse_stored_timestamp(cls, v: Any) -> Any:
        """Parse stored timestamps into aware datetimes."""
        if v in (None, ""):
            return None
        if isinstance(v, str | datetime):
            return parse_timestamp(v)
        return v

    @field_validator("linked_plant_instance_id", mode="before")
    @classmethod
    def blank_plant_link_is_none(cls, v: Any) -> Any:
        """Treat an empty plant link as unlinked."""
        return v or None

    @model_validator(mode="after")
    def check_completion_timestamp(self) -> Self:
        """completed_at is set if and only if the task is completed."""
        if self.status == TaskStatus.COMPLETED and self.completed_at is None:
            msg = "completed task must have completed_at"
            raise ValueError(msg)
        if self.status != TaskStatus.COMPLETED and self.completed_at is not None:
            msg = f"{self.status} task must not have completed_at"
            raise ValueError(msg)
        return self

    @field_serializer("scheduled_at", "completed_at")
    def serialize_timestamp(self, value: datetime | None) -> str | None:
        return to_storage(value) if value is not None else None

    def to_document(self) -> dict[str, Any]:
        """Serialize for the document store (without the id)."""
        return self.model_dump(mode="json", exclude={"id"})

    def is_overdue(self, now: datetime) -> bool:
        """Pending and scheduled before ``now``."""
        return self.status == TaskStatus.PENDING and self.scheduled_at < now
