from src.services import (
    activity_service,
    notification_service,
    project_service,
    task_service,
    verification_service,
)


__all__ = [
    "activity_service",
    "notification_service",
    "project_service",
    "task_service",
    "verification_service",
]
