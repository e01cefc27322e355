"""Task domain models and enums."""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    """Workflow status of a task."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    TESTING = "Testing"
    DONE = "Done"


# Requesting "Archive" toggles the is_archived flag; it is never stored as a status
ARCHIVE = "Archive"

StatusTarget = TaskStatus | Literal["Archive"]


def parse_status_target(value: str) -> StatusTarget:
    """Parse a requested status, accepting the Archive pseudo-status.

    Raises:
        ValueError: If the value is neither a task status nor Archive
    """
    if value == ARCHIVE:
        return ARCHIVE
    return TaskStatus(value)


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    project_id: str = Field(..., description="Owning project ID")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current workflow status")
    is_archived: bool = Field(default=False, description="Archive flag layered over the real status")
    requires_verification: bool = Field(
        default=False,
        description="True while a pending verification request gates a status change",
    )
    pending_verification: str | None = Field(
        default=None,
        description="ID of the pending verification request, if any",
    )
    assignees: list[str] = Field(default_factory=list, description="Assigned user IDs")
    created_by: str | None = Field(default=None, description="Creator user ID")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    def is_assignee(self, user_id: str) -> bool:
        """Whether the user is assigned to this task."""
        return user_id in self.assignees
