"""Verification ledger: opening, deciding, and listing status change requests.

The storage layer enforces that a task has at most one pending request
(a partial unique index on verifications.task_id). Opening a request and
flagging its task happen in one transaction, as do deciding a request and
applying its outcome to the task.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime

from src.core import db_client
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.errors import (
    AlreadyDecidedError,
    ForbiddenError,
    InvalidStatusError,
    NoApproverAvailableError,
    NotAMemberError,
    NotAuthorizedError,
    UniqueConstraintError,
    VerificationAlreadyPendingError,
)
from src.core.logging import log_with_user_context, span
from src.domain.create_models import NotificationCreate
from src.domain.log import ActivityAction
from src.domain.notification import NotificationData, NotificationType
from src.domain.project import Capability, Project
from src.domain.task import StatusTarget, Task, parse_status_target
from src.domain.verification import (
    VerificationOutcome,
    VerificationRequest,
    VerificationRole,
    VerificationStatus,
)
from src.models.service_models import Pagination, VerificationPage, VerificationStats
from src.services import activity_service, project_service, task_state_machine
from src.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)

TASK_RESOURCE = "Task"


@dataclass(frozen=True)
class Opened:
    request: VerificationRequest


@dataclass(frozen=True)
class Conflict:
    task_id: str


async def get_request(*, verification_id: str) -> VerificationRequest:
    """Look up a verification request.

    Raises:
        RecordNotFoundError: If the request does not exist
    """
    record = await db_client.get_record(collection="verifications", record_id=verification_id)
    return VerificationRequest.model_validate(record)


async def get_pending_request(*, task_id: str) -> VerificationRequest | None:
    """The pending request of a task, if any."""
    record = await db_client.get_first_record(
        collection="verifications",
        filter_query=f'task_id = "{sanitize_param(task_id)}" && status = "{VerificationStatus.PENDING}"',
    )
    return VerificationRequest.model_validate(record) if record else None


async def _try_open(*, data: dict) -> Opened | Conflict:
    """Insert a pending request and flag its task atomically.

    A concurrent opener losing the race hits the pending-request index and
    gets a Conflict instead of an exception.
    """
    try:
        async with db_client.transaction():
            record = await db_client.create_record(collection="verifications", data=data)
            await db_client.update_record(
                collection="tasks",
                record_id=data["task_id"],
                data=task_state_machine.open_verification_fields(verification_id=record["id"]),
            )
    except UniqueConstraintError:
        return Conflict(task_id=data["task_id"])
    return Opened(request=VerificationRequest.model_validate(record))


async def open_request(
    *,
    task_id: str,
    requested_by: str,
    requested_status: StatusTarget,
    reason: str | None,
    dispatcher: NotificationDispatcher,
    task: Task | None = None,
    project: Project | None = None,
) -> VerificationRequest:
    """Open a verification request for an assignee's status change.

    Args:
        task_id: Task the change applies to
        requested_by: Assignee asking for the change
        requested_status: Proposed status, or Archive
        reason: Optional justification shown to the approver
        dispatcher: Dispatcher for the approver's notification
        task: Already loaded task, to skip a lookup
        project: Already loaded project, to skip a lookup

    Returns:
        The pending VerificationRequest

    Raises:
        NotAMemberError: If the requester is not a project member
        ForbiddenError: If the requester is not assigned to the task
        InvalidStatusError: If the task already has the requested status
        NoApproverAvailableError: If no owner or manager can be found
        VerificationAlreadyPendingError: If the task already has a pending request
    """
    from src.services import task_service

    with span("verification_service.open_request"):
        task = task or await task_service.get_task(task_id=task_id)
        project = project or await project_service.get_project(project_id=task.project_id)

        if project_service.resolve_capability(user_id=requested_by, project=project) == Capability.NONE:
            raise NotAMemberError()
        if not task.is_assignee(requested_by):
            raise ForbiddenError("Only assignees can request a status change verification.")
        if task_state_machine.is_noop(task=task, target=requested_status):
            raise InvalidStatusError(f"Task is already {requested_status}.")

        approver_id = project_service.find_approver(project=project, exclude_user_id=requested_by)
        if approver_id is None:
            raise NoApproverAvailableError()

        outcome = await _try_open(
            data={
                "task_id": task.id,
                "project_id": project.id,
                "workspace_id": project.workspace_id,
                "requested_by": requested_by,
                "requested_for": approver_id,
                "current_status": task.status.value,
                "requested_status": str(requested_status),
                "status": VerificationStatus.PENDING.value,
                "reason": reason,
            }
        )
        if isinstance(outcome, Conflict):
            logger.info("Rejected second pending verification for task %s", task.id)
            raise VerificationAlreadyPendingError()
        request = outcome.request

        logger.info(
            "Opened verification %s for task %s (%s -> %s), approver %s",
            request.id,
            task.id,
            task.status,
            requested_status,
            approver_id,
        )

        await activity_service.record_activity_safely(
            user_id=requested_by,
            action=ActivityAction.REQUESTED_VERIFICATION,
            resource_type=TASK_RESOURCE,
            resource_id=task.id,
            description=f"requested verification to change status from {task.status} to {requested_status}",
            metadata={"verification_id": request.id},
        )
        await _notify(
            dispatcher=dispatcher,
            request=request,
            recipient_id=approver_id,
            sender_id=requested_by,
            type=NotificationType.VERIFICATION_REQUESTED,
            title="Verification Request",
            message=(
                f'Verification requested to change task "{task.title}" status '
                f"from {task.status} to {requested_status}"
            ),
        )
        return request


async def decide(
    *,
    verification_id: str,
    decided_by: str,
    outcome: VerificationOutcome,
    notes: str | None,
    dispatcher: NotificationDispatcher,
) -> VerificationRequest:
    """Approve or reject a pending request.

    Approval applies the requested status to the task; both outcomes clear
    the task's verification flags.

    Raises:
        RecordNotFoundError: If the request does not exist
        NotAuthorizedError: If decided_by is not the request's approver
        AlreadyDecidedError: If the request is no longer pending
    """
    from src.services import task_service

    with span("verification_service.decide"):
        request = await get_request(verification_id=verification_id)
        if decided_by != request.requested_for:
            raise NotAuthorizedError()
        if not request.is_pending:
            raise AlreadyDecidedError()

        async with db_client.transaction():
            # Conditional on still pending so a concurrent decision loses cleanly
            changed = await db_client.update_where(
                collection="verifications",
                filter_query=f'id = "{sanitize_param(request.id)}" && status = "{VerificationStatus.PENDING}"',
                data={
                    "status": outcome.value,
                    "verified_by": decided_by,
                    "verified_at": datetime.now(UTC).isoformat(),
                    "verification_notes": notes,
                },
            )
            if changed == 0:
                raise AlreadyDecidedError()

            task = await task_service.get_task(task_id=request.task_id)
            task_update = task_state_machine.close_verification_fields()
            if outcome == VerificationOutcome.APPROVED:
                target = _parse_target(request.requested_status)
                task_update = {**task_state_machine.status_change_fields(task=task, target=target), **task_update}
            await db_client.update_record(collection="tasks", record_id=task.id, data=task_update)

        decided = await get_request(verification_id=verification_id)
        log_with_user_context(
            logger, "info", "Verification decided", user_id=decided_by, verification_id=decided.id, outcome=outcome.value
        )

        approved = outcome == VerificationOutcome.APPROVED
        await activity_service.record_activity_safely(
            user_id=decided_by,
            action=ActivityAction.VERIFIED_TASK if approved else ActivityAction.REJECTED_VERIFICATION,
            resource_type=TASK_RESOURCE,
            resource_id=task.id,
            description=(
                f"{'approved' if approved else 'rejected'} verification request "
                f"to change status to {decided.requested_status}"
            ),
            metadata={"verification_id": decided.id},
        )
        await _notify(
            dispatcher=dispatcher,
            request=decided,
            recipient_id=decided.requested_by,
            sender_id=decided_by,
            type=NotificationType.VERIFICATION_APPROVED if approved else NotificationType.VERIFICATION_REJECTED,
            title="Verification Approved" if approved else "Verification Rejected",
            message=(
                f'Your request to change task "{task.title}" status to {decided.requested_status} '
                f"has been {'approved' if approved else 'rejected'}"
            ),
        )
        return decided


def _parse_target(value: str) -> StatusTarget:
    try:
        return parse_status_target(value)
    except ValueError as e:
        raise InvalidStatusError(f"Stored request has an unknown status: {value}") from e


async def _notify(
    *,
    dispatcher: NotificationDispatcher,
    request: VerificationRequest,
    recipient_id: str,
    sender_id: str,
    type: NotificationType,
    title: str,
    message: str,
) -> None:
    """Send a workflow notification after the decision committed; failures are logged only."""
    try:
        await dispatcher.create_and_dispatch(
            NotificationCreate(
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=type,
                title=title,
                message=message,
                data=NotificationData(
                    task_id=request.task_id,
                    project_id=request.project_id,
                    workspace_id=request.workspace_id,
                    verification_id=request.id,
                ),
                workspace_id=request.workspace_id,
            )
        )
    except Exception:
        logger.exception("Failed to send %s notification for verification %s", type, request.id)


def _role_filter(*, user_id: str, role: VerificationRole) -> str:
    column = "requested_for" if role == VerificationRole.APPROVER else "requested_by"
    return f'{column} = "{sanitize_param(user_id)}"'


async def list_for(
    *,
    user_id: str,
    role: VerificationRole,
    status: VerificationStatus | None = None,
    page: int = 1,
    limit: int = Constants.VERIFICATIONS_PAGE_SIZE,
) -> VerificationPage:
    """Requests where the user is the approver or the requester, newest first, one page at a time."""
    with span("verification_service.list_for"):
        page = max(page, 1)
        limit = min(max(limit, 1), Constants.MAX_VERIFICATIONS_PAGE_SIZE)
        filter_query = _role_filter(user_id=user_id, role=role)
        if status:
            filter_query += f' && status = "{status}"'

        records = await db_client.list_records(
            collection="verifications",
            filter_query=filter_query,
            sort="id DESC",
            page=page,
            per_page=limit,
        )
        total = await db_client.count_records(collection="verifications", filter_query=filter_query)

        return VerificationPage(
            verifications=[VerificationRequest.model_validate(record) for record in records],
            pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
        )


async def stats(*, user_id: str) -> VerificationStats:
    """Count requests the user is party to, as requester or approver."""
    with span("verification_service.stats"):
        party = f'(requested_by = "{sanitize_param(user_id)}" || requested_for = "{sanitize_param(user_id)}")'
        counts = {}
        for status in VerificationStatus:
            counts[status.value] = await db_client.count_records(
                collection="verifications",
                filter_query=f'{party} && status = "{status}"',
            )
        return VerificationStats(**counts, total=sum(counts.values()))
