"""Notification domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class NotificationType(StrEnum):
    """Closed set of notification kinds."""

    TASK_ASSIGNED = "task_assigned"
    TASK_UPDATED = "task_updated"
    TASK_COMMENTED = "task_commented"
    TASK_STATUS_CHANGED = "task_status_changed"
    PROJECT_CREATED = "project_created"
    WORKSPACE_INVITE = "workspace_invite"
    MENTION = "mention"
    VERIFICATION_REQUESTED = "verification_requested"
    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_REJECTED = "verification_rejected"


class NotificationData(BaseModel):
    """Ids a client needs to deep-link from a notification."""

    task_id: str | None = None
    project_id: str | None = None
    workspace_id: str | None = None
    comment_id: str | None = None
    verification_id: str | None = None


class Notification(BaseModel):
    """Durable, user-addressed record of a domain event."""

    id: str = Field(..., description="Unique notification ID from database")
    recipient_id: str
    sender_id: str
    type: NotificationType
    title: str
    message: str
    data: NotificationData = Field(default_factory=NotificationData)
    is_read: bool = False
    read_at: str | None = None
    workspace_id: str
    created: str | None = None
    delivered_live: bool = Field(
        default=False,
        description="Whether the live push reached at least one connection (not persisted)",
    )
