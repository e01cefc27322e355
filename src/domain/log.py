"""Activity log domain models for the audit trail."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ActivityAction(StrEnum):
    """Verb tags recorded by the workflow."""

    UPDATED_TASK = "updated_task"
    REQUESTED_VERIFICATION = "requested_verification"
    VERIFIED_TASK = "verified_task"
    REJECTED_VERIFICATION = "rejected_verification"


class ActivityLogEntry(BaseModel):
    """Immutable audit record of a domain action."""

    id: str = Field(..., description="Unique log ID from database")
    user_id: str = Field(..., description="ID of user who performed the action")
    action: str = Field(..., description="Action performed (e.g., 'updated_task', 'verified_task')")
    resource_type: str = Field(..., description="Kind of resource acted on (e.g., 'Task')")
    resource_id: str = Field(..., description="ID of the resource acted on")
    description: str = Field(..., description="Human-readable summary")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form context")
    created: str | None = Field(default=None, description="When the action was recorded (ISO format)")
