"""WebSocket endpoint bridging live connections to the subscription registry."""

import asyncio
import contextlib
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from src.core.realtime import Connection, SubscriptionRegistry, workspace_channel
from src.interface.auth import resolve_session_token


logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

JOIN_WORKSPACE = "join-workspace"
LEAVE_WORKSPACE = "leave-workspace"


async def _forward_events(websocket: WebSocket, connection: Connection) -> None:
    """Send queued registry events to the client until cancelled."""
    while True:
        message = await connection.queue.get()
        await websocket.send_json({"event": message.event, "data": message.data})


async def _handle_frame(
    websocket: WebSocket,
    registry: SubscriptionRegistry,
    connection: Connection,
    frame: Any,
) -> None:
    event = frame.get("event") if isinstance(frame, dict) else None
    workspace_id = frame.get("workspace_id") if isinstance(frame, dict) else None

    if event not in (JOIN_WORKSPACE, LEAVE_WORKSPACE) or not workspace_id:
        await websocket.send_json({"event": "error", "data": {"message": "Unsupported frame"}})
        return

    channel = workspace_channel(str(workspace_id))
    if event == JOIN_WORKSPACE:
        registry.join(connection, channel)
        await websocket.send_json({"event": "workspace-joined", "data": {"workspace_id": str(workspace_id)}})
    else:
        registry.leave(connection, channel)
        await websocket.send_json({"event": "workspace-left", "data": {"workspace_id": str(workspace_id)}})


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = "") -> None:
    """Live notification stream for an authenticated user.

    The user is joined to their personal channel on connect and may join
    workspace channels with {"event": "join-workspace", "workspace_id": ...}.
    """
    user_id = resolve_session_token(token) if token else None
    if user_id is None:
        logger.warning("realtime_auth_failed")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    registry: SubscriptionRegistry = websocket.app.state.registry
    connection = registry.connect(user_id)
    sender = asyncio.create_task(_forward_events(websocket, connection))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                frame = None
            await _handle_frame(websocket, registry, connection, frame)
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected", extra={"user_id": user_id})
    finally:
        registry.disconnect(connection)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
