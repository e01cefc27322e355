"""Append-only activity log for the audit trail."""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.domain.log import ActivityLogEntry


logger = logging.getLogger(__name__)


async def record_activity(
    *,
    user_id: str,
    action: str,
    resource_type: str,
    resource_id: str,
    description: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> ActivityLogEntry:
    """Append an activity entry.

    Args:
        user_id: Actor who performed the action
        action: Verb tag (see ActivityAction)
        resource_type: Kind of resource acted on, e.g. "Task"
        resource_id: ID of the resource acted on
        description: Human-readable summary; defaults to "<action> <resource_type>"
        metadata: Free-form context stored alongside the entry

    Returns:
        The persisted entry

    Raises:
        DatabaseError: If the entry could not be stored
    """
    with span("activity_service.record_activity"):
        record = await db_client.create_record(
            collection="activity_logs",
            data={
                "user_id": user_id,
                "action": action,
                "resource_type": resource_type,
                "resource_id": str(resource_id),
                "description": description or f"{action} {resource_type}",
                "metadata": metadata or {},
            },
        )
        return ActivityLogEntry.model_validate(record)


async def record_activity_safely(**kwargs: Any) -> ActivityLogEntry | None:
    """Record activity after a committed mutation, logging instead of raising on failure."""
    try:
        return await record_activity(**kwargs)
    except Exception:
        logger.exception(
            "Failed to record activity %s for %s %s",
            kwargs.get("action"),
            kwargs.get("resource_type"),
            kwargs.get("resource_id"),
        )
        return None


async def list_activity(*, resource_id: str) -> list[ActivityLogEntry]:
    """List activity for a resource, newest first."""
    with span("activity_service.list_activity"):
        records = await db_client.list_all_records(
            collection="activity_logs",
            filter_query=f'resource_id = "{sanitize_param(resource_id)}"',
            sort="id DESC",
        )
        return [ActivityLogEntry.model_validate(record) for record in records]
