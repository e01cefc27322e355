"""Pure state transition functions for task status and verification flags."""

from datetime import UTC, datetime
from typing import Any

from src.domain.task import ARCHIVE, StatusTarget, Task, TaskStatus


def utc_now_iso() -> str:
    """Current UTC time as an ISO string with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def status_change_fields(*, task: Task, target: StatusTarget) -> dict[str, Any]:
    """Column updates that move a task to the target status.

    Archive only raises the archive flag and keeps the real status. Any real
    status is written and clears the archive flag.
    """
    if target == ARCHIVE:
        return {"is_archived": True, "updated": utc_now_iso()}
    return {"status": TaskStatus(target).value, "is_archived": False, "updated": utc_now_iso()}


def is_noop(*, task: Task, target: StatusTarget) -> bool:
    """Whether moving to target would leave the task unchanged."""
    if target == ARCHIVE:
        return task.is_archived
    return task.status == target and not task.is_archived


def open_verification_fields(*, verification_id: str) -> dict[str, Any]:
    """Flag a task as gated by a pending verification request."""
    return {
        "requires_verification": True,
        "pending_verification": int(verification_id),
        "updated": utc_now_iso(),
    }


def close_verification_fields() -> dict[str, Any]:
    """Clear the verification gate once its request is decided."""
    return {"requires_verification": False, "pending_verification": None, "updated": utc_now_iso()}


def describe_change(*, task: Task, target: StatusTarget) -> str:
    """Activity description for a status change."""
    if target == ARCHIVE:
        return f"archived task {task.title}"
    return f"updated task status from {task.status} to {target}"
