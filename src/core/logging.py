"""Logfire setup and the structured logging helpers used by the services.

Modules log through ``logging.getLogger(__name__)``; once configure_logfire has
run, those records and the service spans land in the same trace.

Service code wraps each operation in a span and attaches ids as extra fields:

    with span("task_service.attempt_status_change"):
        log_with_context(logger, "info", "Task status applied", user_id=requester_id, task_id=task.id)
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


def configure_logfire() -> None:
    """Configure Logfire for the taskgate service.

    Nothing is shipped unless a token is set; local runs only log to stderr.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskgate",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(handlers=[logfire.LogfireLoggingHandler()], level=logging.INFO)

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the task, verification and notification routers."""
    logfire.instrument_fastapi(app)
    logging.getLogger(__name__).info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a span named ``<service>.<operation>``, e.g. ``verification_service.decide``."""
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log ``message`` at ``level`` with the keyword fields attached as ``extra``.

    Example from the status gate:
        log_with_context(logger, "info", "Task status applied", user_id="alice", task_id="7", status="Done")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Like log_with_context, but leaves ``user_id`` out when the actor is unknown.

    Example from the verification ledger:
        log_with_user_context(logger, "info", "Verification decided", user_id="owner-1", outcome="approved")
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    log_with_context(logger, level, message, **context)
