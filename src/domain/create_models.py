"""Pydantic models for creating records in database."""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domain.notification import NotificationData, NotificationType
from src.domain.task import StatusTarget


class VerificationRequestCreate(BaseModel):
    """Body of an explicit verification request."""

    requested_status: StatusTarget = Field(..., description="Status the assignee wants the task moved to")
    reason: str | None = Field(default=None, description="Optional free-text justification")

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str | None) -> str | None:
        """Trim whitespace and treat blank reasons as absent."""
        if v is None:
            return None
        v = v.strip()
        return v or None


class NotificationCreate(BaseModel):
    """Pydantic model for creating a notification record."""

    recipient_id: str
    sender_id: str
    type: NotificationType
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    data: NotificationData = Field(default_factory=NotificationData)
    workspace_id: str

    @model_validator(mode="after")
    def require_deep_link(self) -> "NotificationCreate":
        """At least one deep-link id must be populated."""
        if not any(self.data.model_dump().values()):
            msg = "Notification data must carry at least one resource id"
            raise ValueError(msg)
        return self

    def to_record(self) -> dict[str, Any]:
        """Row payload for the notifications collection."""
        return {
            "recipient_id": self.recipient_id,
            "sender_id": self.sender_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "data": self.data.model_dump(exclude_none=True),
            "workspace_id": self.workspace_id,
        }
