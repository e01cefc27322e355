"""Domain models and DTOs."""

from src.domain.create_models import NotificationCreate, VerificationRequestCreate
from src.domain.log import ActivityAction, ActivityLogEntry
from src.domain.notification import Notification, NotificationData, NotificationType
from src.domain.project import Capability, Project, ProjectMember, ProjectRole
from src.domain.task import ARCHIVE, StatusTarget, Task, TaskStatus
from src.domain.update_models import MarkAllReadUpdate, TaskStatusUpdate, VerificationDecisionUpdate
from src.domain.verification import (
    VerificationOutcome,
    VerificationRequest,
    VerificationRole,
    VerificationStatus,
)


__all__ = [
    "ARCHIVE",
    "ActivityAction",
    "ActivityLogEntry",
    "Capability",
    "MarkAllReadUpdate",
    "Notification",
    "NotificationCreate",
    "NotificationData",
    "NotificationType",
    "Project",
    "ProjectMember",
    "ProjectRole",
    "StatusTarget",
    "Task",
    "TaskStatus",
    "TaskStatusUpdate",
    "VerificationDecisionUpdate",
    "VerificationOutcome",
    "VerificationRequest",
    "VerificationRequestCreate",
    "VerificationRole",
    "VerificationStatus",
]
