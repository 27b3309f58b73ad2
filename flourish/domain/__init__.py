"""Domain models and enums."""

from flourish.domain.plant import ActiveNutrientEffect, CareType, Nutrient, PlantInstance, PlantSpecies
from flourish.domain.task import TaskCategory, TaskInstance, TaskStatus, TaskTemplate


__all__ = [
    "ActiveNutrientEffect",
    "CareType",
    "Nutrient",
    "PlantInstance",
    "PlantSpecies",
    "TaskCategory",
    "TaskInstance",
    "TaskStatus",
    "TaskTemplate",
]
