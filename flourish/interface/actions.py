"""UI-boundary wrappers that turn engine failures into result values.

Screens call these instead of the services directly. Errors raised by the
engine never cross this boundary; they come back as ``ActionResult`` values
carrying a classified ``ErrorResponse``.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field

from flourish.core.errors import ErrorResponse, FlourishError, classify_error_with_response
from flourish.models.service_models import TaskStats
from flourish.modules.plants.nutrients import NutrientService
from flourish.modules.plants.timer import NutrientTimerController
from flourish.modules.tasks.engine import ProgressionEngine


logger = logging.getLogger(__name__)


class ActionResult(BaseModel):
    """Outcome of a user-initiated action."""

    success: bool = Field(..., description="Whether the action succeeded")
    message: str = Field(default="", description="Acknowledgment shown to the user")
    data: dict[str, Any] = Field(default_factory=dict, description="Action payload on success")
    error: ErrorResponse | None = Field(default=None, description="Classified error on failure")


def _failed(action: str, e: FlourishError) -> ActionResult:
    error_response = classify_error_with_response(e)
    logger.warning(
        "%s failed: %s",
        action,
        e,
        extra={
            "error_code": error_response.code,
            "severity": error_response.severity.value,
        },
    )
    return ActionResult(success=False, message=error_response.message, error=error_response)


async def complete_task(engine: ProgressionEngine, task_id: str) -> ActionResult:
    """Complete a task and report the points earned."""
    try:
        result = await engine.complete_task(task_id)
    except FlourishError as e:
        return _failed("complete_task", e)

    data: dict[str, Any] = {"points": result.points, "task_id": result.task.id}
    if result.next_task is not None:
        data["next_task_id"] = result.next_task.id
    return ActionResult(success=True, message=f"Task completed! +{result.points} points", data=data)


async def skip_task(engine: ProgressionEngine, task_id: str, reason: str | None = None) -> ActionResult:
    """Skip a task with an optional reason."""
    try:
        task = await engine.skip_task(task_id, reason)
    except FlourishError as e:
        return _failed("skip_task", e)

    return ActionResult(success=True, message="Task skipped", data={"task_id": task.id})


async def apply_nutrient(
    service: NutrientService,
    plant_instance_id: str,
    nutrient_id: str,
    *,
    user_is_premium: bool = False,
    timers: Iterable[NutrientTimerController] = (),
) -> ActionResult:
    """Apply a nutrient to a plant, updating any timer currently ticking it."""
    try:
        plant = await service.apply_nutrient(plant_instance_id, nutrient_id, user_is_premium=user_is_premium)
    except FlourishError as e:
        return _failed("apply_nutrient", e)

    for controller in timers:
        controller.refresh(plant)

    return ActionResult(
        success=True,
        message="Nutrient applied successfully!",
        data={
            "plant_instance_id": plant.id,
            "water_level": plant.water_level,
            "care_level": plant.care_level,
            "active_nutrients": plant.effects_document(),
        },
    )


async def refresh_stats(engine: ProgressionEngine, user_id: str) -> TaskStats | None:
    """Recompute stats in the background; failures are logged and yield None."""
    try:
        return await engine.compute_stats(user_id)
    except FlourishError as e:
        logger.warning("Stats refresh failed for user %s: %s", user_id, e)
        return None
