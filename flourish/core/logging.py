"""Observability for flourish: Pydantic Logfire plus the standard logging module.

Modules log through ``logging.getLogger(__name__)``. ``configure_logfire``
routes those records into Logfire, and services wrap their operations in
``span(...)`` so a completion, a nutrient application or a timer tick shows up
as one trace.

    logger = logging.getLogger(__name__)

    with span("progression_engine.complete_task", task_id=task_id):
        log_with_user_context(logger, "info", "Task completed", user_id=user_id, points=10)
"""

import logging

import logfire

from flourish.core.config import settings


def configure_logfire(level: int = logging.INFO) -> None:
    """Configure Logfire and attach it to the root logger.

    Records leave the process only when ``LOGFIRE_TOKEN`` is set; without it
    spans and logs stay local.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="flourish",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )

    root = logging.getLogger()
    if not any(isinstance(handler, logfire.LogfireLoggingHandler) for handler in root.handlers):
        root.addHandler(logfire.LogfireLoggingHandler())
    root.setLevel(level)

    logging.getLogger(__name__).info("Logfire configured", extra={"environment": settings.environment})


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a Logfire span named ``<service>.<operation>``."""
    return logfire.span(name, **attributes)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Log ``message`` at ``level`` with ``context`` attached as structured fields.

    Args:
        logger: Logger to emit through
        level: "debug", "info", "warning", "error" or "critical"
        message: Log message
        **context: Structured fields (task_id, plant_instance_id, points, ...)
    """
    getattr(logger, level.lower())(message, extra=context)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Like ``log_with_context``, tagging the record with the acting user when known."""
    if user_id:
        extra = {"user_id": user_id, **extra}
    log_with_context(logger, level, message, **extra)
