"""Task loading and the status gate.

The gate decides, per status change attempt, whether the change is applied
directly (owners and managers) or routed through the verification ledger
(assignees without a privileged role).
"""

import logging
from typing import TYPE_CHECKING

from src.core import db_client
from src.core.db_client import sanitize_param
from src.core.errors import ForbiddenError, NotAMemberError, VerificationAlreadyPendingError
from src.core.logging import log_with_context, span
from src.domain.log import ActivityAction, ActivityLogEntry
from src.domain.project import Capability, Project
from src.domain.task import StatusTarget, Task
from src.models.service_models import StatusChangeOutcome, StatusChangeResult
from src.services import activity_service, project_service, task_state_machine, verification_service


if TYPE_CHECKING:
    from src.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)

TASK_RESOURCE = "Task"


async def get_task(*, task_id: str) -> Task:
    """Load a task with its assignees.

    Raises:
        RecordNotFoundError: If the task does not exist
    """
    with span("task_service.get_task"):
        record = await db_client.get_record(collection="tasks", record_id=task_id)
        assignee_rows = await db_client.list_all_records(
            collection="task_assignees",
            filter_query=f'task_id = "{sanitize_param(task_id)}"',
            sort="id ASC",
        )
        return Task.model_validate({**record, "assignees": [row["user_id"] for row in assignee_rows]})


async def _load_membership(*, task_id: str, user_id: str) -> tuple[Task, Project, Capability]:
    """Load a task, its project and the user's capability, rejecting non-members."""
    task = await get_task(task_id=task_id)
    project = await project_service.get_project(project_id=task.project_id)
    capability = project_service.resolve_capability(user_id=user_id, project=project)
    if capability == Capability.NONE:
        raise NotAMemberError()
    return task, project, capability


async def attempt_status_change(
    *,
    task_id: str,
    requester_id: str,
    new_status: StatusTarget,
    dispatcher: "NotificationDispatcher",
) -> StatusChangeResult:
    """Route a status change attempt.

    Owners and managers change the status immediately. Assignees without a
    privileged role open a verification request instead. Everyone else is
    refused.

    Args:
        task_id: Task to change
        requester_id: Authenticated user attempting the change
        new_status: Target status, or Archive to raise the archive flag
        dispatcher: Notification dispatcher used when a request is opened

    Returns:
        StatusChangeResult with outcome "applied" or "pending_verification"

    Raises:
        NotAMemberError: If the requester is not a project member
        ForbiddenError: If the requester is neither privileged nor assigned
        VerificationAlreadyPendingError: If the task already awaits approval
        NoApproverAvailableError: If the project has no owner or manager
    """
    with span("task_service.attempt_status_change"):
        task, project, capability = await _load_membership(task_id=task_id, user_id=requester_id)

        if capability.is_privileged:
            updated = await _apply_directly(task=task, requester_id=requester_id, new_status=new_status)
            return StatusChangeResult(status=StatusChangeOutcome.APPLIED, task=updated)

        if not task.is_assignee(requester_id):
            raise ForbiddenError()

        if task_state_machine.is_noop(task=task, target=new_status):
            logger.info("Ignoring no-op status change on task %s by %s", task_id, requester_id)
            return StatusChangeResult(status=StatusChangeOutcome.APPLIED, task=task)

        # Fast path only; the ledger's unique index is the real guard
        if task.requires_verification:
            raise VerificationAlreadyPendingError()

        request = await verification_service.open_request(
            task_id=task.id,
            requested_by=requester_id,
            requested_status=new_status,
            reason=f"Status change request from {task.status} to {new_status}",
            dispatcher=dispatcher,
            task=task,
            project=project,
        )
        return StatusChangeResult(
            status=StatusChangeOutcome.PENDING_VERIFICATION,
            task=await get_task(task_id=task.id),
            verification_id=request.id,
        )


async def _apply_directly(*, task: Task, requester_id: str, new_status: StatusTarget) -> Task:
    """Apply a privileged status change and record it."""
    await db_client.update_record(
        collection="tasks",
        record_id=task.id,
        data=task_state_machine.status_change_fields(task=task, target=new_status),
    )
    log_with_context(
        logger, "info", "Task status applied", user_id=requester_id, task_id=task.id, status=str(new_status)
    )

    await activity_service.record_activity_safely(
        user_id=requester_id,
        action=ActivityAction.UPDATED_TASK,
        resource_type=TASK_RESOURCE,
        resource_id=task.id,
        description=task_state_machine.describe_change(task=task, target=new_status),
        metadata={"from": task.status.value, "to": str(new_status)},
    )
    return await get_task(task_id=task.id)


async def toggle_archive(*, task_id: str, requester_id: str) -> Task:
    """Flip the archive flag of a task; any project member may do this."""
    with span("task_service.toggle_archive"):
        task, _, _ = await _load_membership(task_id=task_id, user_id=requester_id)
        return await _set_archived(task=task, requester_id=requester_id, archived=not task.is_archived)


async def unarchive(*, task_id: str, requester_id: str) -> Task:
    """Clear the archive flag of a task; any project member may do this."""
    with span("task_service.unarchive"):
        task, _, _ = await _load_membership(task_id=task_id, user_id=requester_id)
        return await _set_archived(task=task, requester_id=requester_id, archived=False)


async def _set_archived(*, task: Task, requester_id: str, archived: bool) -> Task:
    await db_client.update_record(
        collection="tasks",
        record_id=task.id,
        data={"is_archived": archived, "updated": task_state_machine.utc_now_iso()},
    )
    await activity_service.record_activity_safely(
        user_id=requester_id,
        action=ActivityAction.UPDATED_TASK,
        resource_type=TASK_RESOURCE,
        resource_id=task.id,
        description=f"{'archived' if archived else 'unarchived'} task {task.title}",
    )
    return await get_task(task_id=task.id)


async def list_task_activity(*, task_id: str, requester_id: str) -> list[ActivityLogEntry]:
    """Activity history of a task for a project member, newest first."""
    with span("task_service.list_task_activity"):
        await _load_membership(task_id=task_id, user_id=requester_id)
        return await activity_service.list_activity(resource_id=task_id)
