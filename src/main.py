"""taskgate - status-change verification and notification service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.errors import DatabaseError, TaskGateError, classify_error_with_response
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.realtime import SubscriptionRegistry
from src.interface.notification_router import router as notification_router
from src.interface.realtime_router import router as realtime_router
from src.interface.task_router import router as task_router
from src.interface.verification_router import router as verification_router
from src.services.notification_service import NotificationDispatcher


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    if settings.is_production:
        settings.require_credential("secret_key", "Session signing")

    await init_db()
    logger.info("Database initialized")

    app.state.registry = SubscriptionRegistry()
    app.state.dispatcher = NotificationDispatcher(app.state.registry)
    yield
    # Shutdown
    await close_connection()


app = FastAPI(
    title="taskgate",
    description="Status-change verification and notification fan-out for project tasks",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(task_router)
app.include_router(verification_router)
app.include_router(notification_router)
app.include_router(realtime_router)


@app.exception_handler(TaskGateError)
@app.exception_handler(DatabaseError)
async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Render domain and storage errors as {code, message, suggestion}."""
    response = classify_error_with_response(exc)
    if response.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "error": str(exc)})
    else:
        logger.info("request_rejected", extra={"path": request.url.path, "code": response.code})
    return JSONResponse(
        status_code=response.status_code,
        content={"code": response.code, "message": response.message, "suggestion": response.suggestion},
    )


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
