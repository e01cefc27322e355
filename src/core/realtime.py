"""In-memory real-time subscription registry.

Each live connection owns a bounded asyncio.Queue. Publishing is
fire-and-forget: events are put on the queues of the connections currently
joined to a channel and never awaited, acknowledged, or redelivered.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    """Personal channel of a user."""
    return f"{constants.USER_CHANNEL_PREFIX}{user_id}"


def workspace_channel(workspace_id: str) -> str:
    """Shared channel of a workspace."""
    return f"{constants.WORKSPACE_CHANNEL_PREFIX}{workspace_id}"


@dataclass(frozen=True)
class RealtimeEvent:
    """Event delivered to a live connection."""

    event: str
    data: dict[str, Any]


@dataclass(eq=False)
class Connection:
    """A live client connection and the channels it has joined."""

    user_id: str
    queue: asyncio.Queue[RealtimeEvent]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    channels: set[str] = field(default_factory=set)


class SubscriptionRegistry:
    """Tracks which connections are joined to which channels."""

    def __init__(self, queue_maxsize: int | None = None) -> None:
        self._queue_maxsize = queue_maxsize or settings.realtime_queue_size
        # channel -> connections joined to it
        self._channels: dict[str, set[Connection]] = defaultdict(set)

    def connect(self, user_id: str) -> Connection:
        """Register a connection for an identified user and join its personal channel."""
        connection = Connection(user_id=user_id, queue=asyncio.Queue(maxsize=self._queue_maxsize))
        self.join(connection, user_channel(user_id))
        logger.info("Realtime connection opened", extra={"connection_id": connection.id, "user_id": user_id})
        return connection

    def join(self, connection: Connection, channel: str) -> None:
        self._channels[channel].add(connection)
        connection.channels.add(channel)

    def leave(self, connection: Connection, channel: str) -> None:
        subscribers = self._channels.get(channel)
        if subscribers is not None:
            subscribers.discard(connection)
            if not subscribers:
                del self._channels[channel]
        connection.channels.discard(channel)

    def disconnect(self, connection: Connection) -> None:
        """Remove a connection from every channel it joined."""
        for channel in list(connection.channels):
            self.leave(connection, channel)
        logger.info("Realtime connection closed", extra={"connection_id": connection.id})

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> int:
        """Deliver an event to every connection currently joined to the channel.

        Connections whose queue is full are considered dead and dropped from
        the channel. Returns the number of connections that received the event.
        """
        message = RealtimeEvent(event=event, data=payload)
        delivered = 0
        dead_connections = []
        for connection in self._channels.get(channel, set()):
            try:
                connection.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                dead_connections.append(connection)

        for connection in dead_connections:
            logger.warning(
                "Dropping realtime connection with full queue",
                extra={"connection_id": connection.id, "channel": channel},
            )
            self.leave(connection, channel)

        return delivered
