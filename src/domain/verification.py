"""Verification request domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class VerificationStatus(StrEnum):
    """Lifecycle of a verification request; only PENDING is non-terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationOutcome(StrEnum):
    """Decision an approver can take on a pending request."""

    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationRole(StrEnum):
    """Which side of a request a listing is for."""

    APPROVER = "approver"
    REQUESTER = "requester"


class VerificationRequest(BaseModel):
    """Approval record proposing a status transition on a task."""

    id: str = Field(..., description="Unique verification ID from database")
    task_id: str
    project_id: str
    workspace_id: str
    requested_by: str = Field(..., description="Assignee who wants the change")
    requested_for: str = Field(..., description="Approver resolved at creation time")
    current_status: str = Field(..., description="Task status when the request was opened")
    requested_status: str = Field(..., description="Proposed status (may be Archive)")
    status: VerificationStatus = VerificationStatus.PENDING
    reason: str | None = None
    verified_at: str | None = None
    verified_by: str | None = None
    verification_notes: str | None = None
    created: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == VerificationStatus.PENDING
