"""Error taxonomy and user-facing error classification."""

from enum import Enum

from pydantic import BaseModel


class FlourishError(Exception):
    """Base class for errors raised by the progression engine."""


class NotFoundError(FlourishError):
    """A referenced task instance, template, plant or nutrient does not exist."""


class InvalidStateError(FlourishError):
    """An operation is not allowed in the record's current state."""


class PremiumRequiredError(InvalidStateError):
    """A premium-only nutrient was applied without a premium subscription."""


class PersistenceError(FlourishError):
    """A document store read or write failed."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Task errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_TEMPLATE_NOT_FOUND = "ERR_TEMPLATE_NOT_FOUND"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"

    # Plant errors
    ERR_PLANT_NOT_FOUND = "ERR_PLANT_NOT_FOUND"
    ERR_NUTRIENT_NOT_FOUND = "ERR_NUTRIENT_NOT_FOUND"
    ERR_PREMIUM_REQUIRED = "ERR_PREMIUM_REQUIRED"

    # Storage errors
    ERR_PERSISTENCE = "ERR_PERSISTENCE"

    # Generic errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def _classify_not_found(error_str: str) -> ErrorResponse:
    """Pick the not-found response matching the missing record kind."""
    if "template" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_TEMPLATE_NOT_FOUND,
            message="This task type is no longer available.",
            suggestion="Pick another task from the catalog.",
            severity=ErrorSeverity.LOW,
        )

    if "nutrient" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_NUTRIENT_NOT_FOUND,
            message="I couldn't find that nutrient.",
            suggestion="Refresh the nutrient list and try again.",
            severity=ErrorSeverity.LOW,
        )

    if "plant" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_PLANT_NOT_FOUND,
            message="I couldn't find that plant.",
            suggestion="Go back to your greenhouse and select the plant again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if "task" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="I couldn't find that task.",
            suggestion="Refresh your task list; it may have been deleted.",
            severity=ErrorSeverity.LOW,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_NOT_FOUND,
        message="The requested item could not be found.",
        suggestion="Refresh and try again.",
        severity=ErrorSeverity.LOW,
    )


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()

    if isinstance(exception, NotFoundError):
        return _classify_not_found(error_str)

    if isinstance(exception, PremiumRequiredError):
        return ErrorResponse(
            code=ErrorCode.ERR_PREMIUM_REQUIRED,
            message="This nutrient is only available to premium members.",
            suggestion="Upgrade to premium to unlock it.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidStateError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the current state.",
            suggestion="Refresh your task list and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, PersistenceError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERSISTENCE,
            message="Your change could not be saved.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
