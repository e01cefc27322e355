"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from enum import StrEnum

from pydantic import BaseModel

from src.domain.notification import Notification
from src.domain.task import Task
from src.domain.verification import VerificationRequest


class StatusChangeOutcome(StrEnum):
    """Result kind of a status change attempt."""

    APPLIED = "applied"
    PENDING_VERIFICATION = "pending_verification"


class StatusChangeResult(BaseModel):
    """Outcome of routing a status change through the gate."""

    status: StatusChangeOutcome
    task: Task
    verification_id: str | None = None


class VerificationStats(BaseModel):
    """Counts of verification requests by status for one user."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0


class Pagination(BaseModel):
    """Page position within a listing."""

    current: int
    pages: int
    total: int


class NotificationPage(BaseModel):
    """One page of a user's notifications."""

    notifications: list[Notification]
    pagination: Pagination
    unread_count: int


class VerificationPage(BaseModel):
    """One page of the requests a user is party to."""

    verifications: list[VerificationRequest]
    pagination: Pagination
