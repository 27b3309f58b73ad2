"""Plant, nutrient and species domain models.

Plant documents written by older clients carry stringly-typed fields
(``waterlevel: "50"``, ``activeNutrients: "[...]"`` as a JSON string, camelCase
names). They are normalized here on read so the services only ever see
integers, lists and aware datetimes.
"""

import json
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator

from flourish.core.clock import parse_timestamp, to_storage
from flourish.core.config import constants, settings


class CareType(StrEnum):
    """Care action forwarded to a plant when a linked task completes."""

    WATER = "water"
    FERTILIZE = "fertilize"
    REPOT = "repot"


def clamp_level(value: int) -> int:
    """Clamp a plant level into [MIN_LEVEL, MAX_LEVEL]."""
    return max(constants.MIN_LEVEL, min(constants.MAX_LEVEL, value))


def _parse_optional_timestamp(v: Any) -> Any:
    if v in (None, ""):
        return None
    if isinstance(v, str | datetime):
        return parse_timestamp(v)
    return v


class ActiveNutrientEffect(BaseModel):
    """A time-bounded nutrient bonus counting down on a plant."""

    nutrient_id: str = Field(..., validation_alias=AliasChoices("nutrient_id", "nutrientId"))
    nutrient_name: str = Field(default="", validation_alias=AliasChoices("nutrient_name", "nutrientName"))
    remaining_seconds: int = Field(..., ge=0, validation_alias=AliasChoices("remaining_seconds", "timer"))


def _remaining_seconds(entry: Any) -> int:
    if isinstance(entry, ActiveNutrientEffect):
        return entry.remaining_seconds
    if not isinstance(entry, dict):
        return 0
    raw = entry.get("remaining_seconds", entry.get("timer"))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


class PlantInstance(BaseModel):
    """A user's owned plant."""

    id: str = Field(..., description="Unique plant instance ID from the document store")
    user_id: str = Field(..., validation_alias=AliasChoices("user_id", "userId"))
    species_id: str = Field(default="", validation_alias=AliasChoices("species_id", "plantId"))
    water_level: int = Field(default=0, validation_alias=AliasChoices("water_level", "waterlevel", "waterLevel"))
    care_level: int = Field(default=0, validation_alias=AliasChoices("care_level", "carelevel", "careLevel"))
    active_nutrients: list[ActiveNutrientEffect] = Field(
        default_factory=list,
        validation_alias=AliasChoices("active_nutrients", "activeNutrients"),
    )
    applied_nutrient_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("applied_nutrient_ids", "nutrientsid"),
        description="Every nutrient ever applied, in order",
    )
    applied_nutrient_names: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("applied_nutrient_names", "nutrients"),
    )
    last_watered: datetime | None = Field(default=None, validation_alias=AliasChoices("last_watered", "lastWatered"))
    last_fertilized: datetime | None = Field(
        default=None, validation_alias=AliasChoices("last_fertilized", "lastFertilized")
    )
    last_repotted: datetime | None = Field(
        default=None, validation_alias=AliasChoices("last_repotted", "lastRepotted")
    )
    acquired_at: datetime | None = Field(default=None, validation_alias=AliasChoices("acquired_at", "dateAdded"))
    notes: str = Field(default="", description="Care journal")

    @field_validator("water_level", "care_level", mode="before")
    @classmethod
    def coerce_level(cls, v: Any) -> int:
        """Parse stringly-typed levels and clamp them into range."""
        if v in (None, ""):
            return constants.MIN_LEVEL
        try:
            level = int(float(v))
        except (TypeError, ValueError):
            return constants.MIN_LEVEL
        return clamp_level(level)

    @field_validator("active_nutrients", mode="before")
    @classmethod
    def coerce_active_nutrients(cls, v: Any) -> Any:
        """Decode a JSON-string effect list and drop expired entries."""
        if v in (None, ""):
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                return []
        if not isinstance(v, list):
            return []
        return [e for e in v if _remaining_seconds(e) > 0]

    @field_validator("applied_nutrient_ids", "applied_nutrient_names", mode="before")
    @classmethod
    def coerce_history(cls, v: Any) -> Any:
        if v in (None, ""):
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("last_watered", "last_fertilized", "last_repotted", "acquired_at", mode="before")
    @classmethod
    def parse_stored_timestamp(cls, v: Any) -> Any:
        return _parse_optional_timestamp(v)

    @field_validator("notes", mode="before")
    @classmethod
    def none_notes_is_empty(cls, v: Any) -> Any:
        return v or ""

    @field_serializer("last_watered", "last_fertilized", "last_repotted", "acquired_at")
    def serialize_timestamp(self, value: datetime | None) -> str | None:
        return to_storage(value) if value is not None else None

    def to_document(self) -> dict[str, Any]:
        """Serialize for the document store (without the id)."""
        return self.model_dump(mode="json", exclude={"id"})

    def effects_document(self) -> list[dict[str, Any]]:
        """Serialized active effect list, as written by timer ticks."""
        return [effect.model_dump(mode="json") for effect in self.active_nutrients]


class Nutrient(BaseModel):
    """Read-only catalog entry for an applicable nutrient."""

    id: str
    name: str = ""
    timer_seconds: int = Field(
        default_factory=lambda: settings.default_nutrient_timer_seconds,
        validation_alias=AliasChoices("timer_seconds", "timer"),
        description="Effect duration in seconds",
    )
    is_premium: bool = Field(default=False, validation_alias=AliasChoices("is_premium", "isPremium"))

    @field_validator("timer_seconds", mode="before")
    @classmethod
    def coerce_timer(cls, v: Any) -> int:
        """Parse the timer, falling back to the default when missing, unparseable or zero."""
        try:
            seconds = int(str(v).strip())
        except (TypeError, ValueError):
            return settings.default_nutrient_timer_seconds
        return seconds if seconds > 0 else settings.default_nutrient_timer_seconds


class PlantSpecies(BaseModel):
    """Read-only species catalog entry."""

    id: str
    name: str = ""
    watering_frequency_days: int = Field(
        default=constants.DEFAULT_WATERING_FREQUENCY_DAYS,
        validation_alias=AliasChoices("watering_frequency_days", "wateringFrequency"),
    )

    @field_validator("watering_frequency_days", mode="before")
    @classmethod
    def coerce_frequency(cls, v: Any) -> int:
        try:
            days = int(v)
        except (TypeError, ValueError):
            return constants.DEFAULT_WATERING_FREQUENCY_DAYS
        return days if days > 0 else constants.DEFAULT_WATERING_FREQUENCY_DAYS
