"""Task status endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from src.domain.log import ActivityLogEntry
from src.domain.task import Task
from src.domain.update_models import TaskStatusUpdate
from src.interface.auth import get_current_user_id
from src.interface.deps import get_dispatcher
from src.models.service_models import StatusChangeOutcome
from src.services import task_service
from src.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/{task_id}/status")
async def post_task_status(
    task_id: str,
    body: TaskStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    """Change a task's status, or open a verification request for an assignee."""
    result = await task_service.attempt_status_change(
        task_id=task_id,
        requester_id=user_id,
        new_status=body.status,
        dispatcher=dispatcher,
    )
    response: dict[str, Any] = {"status": result.status.value, "task": result.task.model_dump(mode="json")}
    if result.status == StatusChangeOutcome.PENDING_VERIFICATION:
        response["verification_id"] = result.verification_id
    return response


@router.post("/{task_id}/archive")
async def post_toggle_archive(task_id: str, user_id: str = Depends(get_current_user_id)) -> Task:
    return await task_service.toggle_archive(task_id=task_id, requester_id=user_id)


@router.post("/{task_id}/unarchive")
async def post_unarchive(task_id: str, user_id: str = Depends(get_current_user_id)) -> Task:
    return await task_service.unarchive(task_id=task_id, requester_id=user_id)


@router.get("/{task_id}/activity")
async def get_task_activity(task_id: str, user_id: str = Depends(get_current_user_id)) -> list[ActivityLogEntry]:
    """Activity history of a task, newest first."""
    return await task_service.list_task_activity(task_id=task_id, requester_id=user_id)
