"""Notification persistence, live fan-out, and the per-user notification inbox."""

import logging
import math
from datetime import UTC, datetime
from typing import Any, Protocol

from src.core import db_client
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.errors import RecordNotFoundError
from src.core.logging import span
from src.core.realtime import user_channel, workspace_channel
from src.domain.create_models import NotificationCreate
from src.domain.notification import Notification
from src.models.service_models import NotificationPage, Pagination


logger = logging.getLogger(__name__)

NEW_NOTIFICATION_EVENT = "new-notification"
WORKSPACE_NOTIFICATION_EVENT = "workspace-notification"


class Publisher(Protocol):
    """Anything that can push an event to the connections joined to a channel."""

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> int: ...


class NotificationDispatcher:
    """Persists notifications and pushes them to live subscribers.

    Delivery is at-most-once over the live channel: the stored row is the
    durable copy and a client that was offline picks it up from the inbox.
    """

    def __init__(self, publisher: Publisher) -> None:
        self._publisher = publisher

    async def create_and_dispatch(self, notification_data: NotificationCreate) -> Notification:
        """Store a notification, then push it on the recipient and workspace channels.

        Raises:
            DatabaseError: If the notification could not be stored
        """
        with span("notification_service.create_and_dispatch"):
            record = await db_client.create_record(collection="notifications", data=notification_data.to_record())
            notification = Notification.model_validate(record)
            notification.delivered_live = self._push(notification)

            logger.info(
                "Dispatched %s notification %s to %s (live=%s)",
                notification.type,
                notification.id,
                notification.recipient_id,
                notification.delivered_live,
            )
            return notification

    def _push(self, notification: Notification) -> bool:
        payload = notification.model_dump(mode="json", exclude={"delivered_live"})
        try:
            delivered = self._publisher.publish(
                user_channel(notification.recipient_id),
                NEW_NOTIFICATION_EVENT,
                payload,
            )
            self._publisher.publish(
                workspace_channel(notification.workspace_id),
                WORKSPACE_NOTIFICATION_EVENT,
                payload,
            )
        except Exception:
            logger.exception("Failed to push notification %s", notification.id)
            return False
        return delivered > 0


def _inbox_filter(*, user_id: str, workspace_id: str | None = None, unread_only: bool = False) -> str:
    filter_query = f'recipient_id = "{sanitize_param(user_id)}"'
    if workspace_id:
        filter_query += f' && workspace_id = "{sanitize_param(workspace_id)}"'
    if unread_only:
        filter_query += ' && is_read = "false"'
    return filter_query


async def list_notifications(
    *,
    user_id: str,
    workspace_id: str | None = None,
    page: int = 1,
    limit: int = Constants.NOTIFICATIONS_PAGE_SIZE,
) -> NotificationPage:
    """List a user's notifications newest first, with paging and the unread count."""
    with span("notification_service.list_notifications"):
        page = max(page, 1)
        limit = min(max(limit, 1), Constants.MAX_NOTIFICATIONS_PAGE_SIZE)
        filter_query = _inbox_filter(user_id=user_id, workspace_id=workspace_id)

        records = await db_client.list_records(
            collection="notifications",
            filter_query=filter_query,
            sort="id DESC",
            page=page,
            per_page=limit,
        )
        total = await db_client.count_records(collection="notifications", filter_query=filter_query)
        unread_count = await get_unread_count(user_id=user_id, workspace_id=workspace_id)

        return NotificationPage(
            notifications=[Notification.model_validate(record) for record in records],
            pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
            unread_count=unread_count,
        )


async def get_unread_count(*, user_id: str, workspace_id: str | None = None) -> int:
    return await db_client.count_records(
        collection="notifications",
        filter_query=_inbox_filter(user_id=user_id, workspace_id=workspace_id, unread_only=True),
    )


async def _get_owned(*, notification_id: str, user_id: str) -> Notification:
    """Load a notification, hiding other users' notifications behind a not-found error."""
    record = await db_client.get_record(collection="notifications", record_id=notification_id)
    notification = Notification.model_validate(record)
    if notification.recipient_id != user_id:
        raise RecordNotFoundError("Notification not found")
    return notification


async def mark_as_read(*, notification_id: str, user_id: str) -> Notification:
    """Mark one of the user's notifications read.

    Raises:
        RecordNotFoundError: If the notification does not exist or belongs to someone else
    """
    with span("notification_service.mark_as_read"):
        notification = await _get_owned(notification_id=notification_id, user_id=user_id)
        if notification.is_read:
            return notification

        record = await db_client.update_record(
            collection="notifications",
            record_id=notification_id,
            data={"is_read": True, "read_at": datetime.now(UTC).isoformat()},
        )
        return Notification.model_validate(record)


async def mark_all_as_read(*, user_id: str, workspace_id: str | None = None) -> int:
    """Mark every unread notification of the user read; returns how many changed."""
    with span("notification_service.mark_all_as_read"):
        updated = await db_client.update_where(
            collection="notifications",
            filter_query=_inbox_filter(user_id=user_id, workspace_id=workspace_id, unread_only=True),
            data={"is_read": True, "read_at": datetime.now(UTC).isoformat()},
        )
        logger.info("Marked %d notifications read for %s", updated, user_id)
        return updated


async def delete_notification(*, notification_id: str, user_id: str) -> None:
    """Delete one of the user's notifications.

    Raises:
        RecordNotFoundError: If the notification does not exist or belongs to someone else
    """
    with span("notification_service.delete_notification"):
        await _get_owned(notification_id=notification_id, user_id=user_id)
        await db_client.delete_record(collection="notifications", record_id=notification_id)
