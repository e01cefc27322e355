"""Update models for database operations."""

from pydantic import BaseModel, Field

from src.domain.task import StatusTarget
from src.domain.verification import VerificationOutcome


class TaskStatusUpdate(BaseModel):
    """Status change attempt on a task."""

    status: StatusTarget


class VerificationDecisionUpdate(BaseModel):
    """Approver's decision on a pending verification request."""

    status: VerificationOutcome
    verification_notes: str | None = Field(default=None, description="Optional notes for the requester")


class MarkAllReadUpdate(BaseModel):
    """Scope for bulk-marking notifications read."""

    workspace_id: str | None = None
