"""Shared FastAPI dependencies."""

from fastapi import Request

from src.services.notification_service import NotificationDispatcher


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Notification dispatcher created at application startup."""
    return request.app.state.dispatcher
