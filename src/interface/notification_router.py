"""Notification inbox endpoints."""

from fastapi import APIRouter, Depends, Query, status

from src.core.config import Constants
from src.domain.notification import Notification
from src.domain.update_models import MarkAllReadUpdate
from src.interface.auth import get_current_user_id
from src.models.service_models import NotificationPage
from src.services import notification_service


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def get_notifications(
    workspace_id: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=Constants.NOTIFICATIONS_PAGE_SIZE, ge=1, le=Constants.MAX_NOTIFICATIONS_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
) -> NotificationPage:
    return await notification_service.list_notifications(
        user_id=user_id,
        workspace_id=workspace_id,
        page=page,
        limit=limit,
    )


@router.get("/unread-count")
async def get_unread_count(
    workspace_id: str | None = None,
    user_id: str = Depends(get_current_user_id),
) -> dict[str, int]:
    count = await notification_service.get_unread_count(user_id=user_id, workspace_id=workspace_id)
    return {"count": count}


@router.patch("/mark-all-read")
async def patch_mark_all_read(
    body: MarkAllReadUpdate | None = None,
    user_id: str = Depends(get_current_user_id),
) -> dict[str, int]:
    """Mark every unread notification read, optionally within one workspace."""
    workspace_id = body.workspace_id if body else None
    updated = await notification_service.mark_all_as_read(user_id=user_id, workspace_id=workspace_id)
    return {"updated": updated}


@router.patch("/{notification_id}/read")
async def patch_mark_read(notification_id: str, user_id: str = Depends(get_current_user_id)) -> Notification:
    return await notification_service.mark_as_read(notification_id=notification_id, user_id=user_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(notification_id: str, user_id: str = Depends(get_current_user_id)) -> None:
    await notification_service.delete_notification(notification_id=notification_id, user_id=user_id)
