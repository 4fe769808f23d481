"""
Real-time connection registry.

Tracks every live WebSocket per user so services can fan entity changes
out to a user's "room". The registry is process local and is only
touched from the event loop, so it needs no locking.

Lifecycle of a connection::

    connecting -> authenticated -> joined -> active <-> idle -> disconnected
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Set

import structlog
from bson import ObjectId
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from fanpage_service.models.types import ConnectionState
from fanpage_service.utils.date_utils import utc_now
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector

logger = structlog.get_logger(__name__)


@dataclass
class RealtimeConnection:
    """Represents an active WebSocket connection."""
    user_id: str
    websocket: WebSocket
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: ConnectionState = ConnectionState.CONNECTING
    connected_at: datetime = field(default_factory=utc_now)
    last_activity: datetime = field(default_factory=utc_now)

    def touch(self) -> None:
        self.last_activity = utc_now()
        self.state = ConnectionState.ACTIVE

    def mark_idle(self) -> None:
        self.state = ConnectionState.IDLE


def encode_event(event: str, payload: Any) -> Dict[str, Any]:
    """Wire frame for one server event."""
    return jsonable_encoder(
        {"event": event, "data": payload},
        custom_encoder={ObjectId: str}
    )


class ConnectionRegistry:
    """Maps user ids to their live connections"""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.active_connections: Dict[str, RealtimeConnection] = {}
        self.user_connections: Dict[str, Set[str]] = {}  # user_id -> connection_ids
        self.metrics = metrics or get_metrics_collector()
        self.logger = structlog.get_logger(self.__class__.__name__)

    def register(self, connection: RealtimeConnection) -> RealtimeConnection:
        """Join the connection to its user's room."""
        self.active_connections[connection.connection_id] = connection
        self.user_connections.setdefault(connection.user_id, set()).add(connection.connection_id)
        connection.state = ConnectionState.JOINED
        self.metrics.set_active_connections(len(self.active_connections))

        self.logger.info(
            "Realtime connection registered",
            connection_id=connection.connection_id,
            user_id=connection.user_id,
            user_connections=len(self.user_connections[connection.user_id])
        )
        return connection

    def unregister(self, connection_id: str) -> None:
        connection = self.active_connections.pop(connection_id, None)
        if connection is None:
            return

        connection.state = ConnectionState.DISCONNECTED
        user_ids = self.user_connections.get(connection.user_id)
        if user_ids is not None:
            user_ids.discard(connection_id)
            if not user_ids:
                del self.user_connections[connection.user_id]

        self.metrics.set_active_connections(len(self.active_connections))
        self.logger.info(
            "Realtime connection removed",
            connection_id=connection_id,
            user_id=connection.user_id
        )

    def connections_for(self, user_id: Any) -> Set[str]:
        return set(self.user_connections.get(str(user_id), set()))

    def is_online(self, user_id: Any) -> bool:
        return bool(self.user_connections.get(str(user_id)))

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)

    async def send(self, connection: RealtimeConnection, event: str, payload: Any) -> bool:
        """
        Send one event to one connection.

        Returns:
            False when the send failed; the connection is then dropped
        """
        try:
            await connection.websocket.send_json(encode_event(event, payload))
            return True
        except Exception as e:
            self.logger.warning(
                "Realtime delivery failed for connection",
                connection_id=connection.connection_id,
                user_id=connection.user_id,
                realtime_event=event,
                error=str(e)
            )
            self.unregister(connection.connection_id)
            return False

    async def emit_to_user(self, user_id: Any, event: str, payload: Any) -> int:
        """
        Deliver an event to every connection joined to the user's room.

        Returns:
            Number of connections that received the event; zero when the
            user has no live connection and the event was dropped
        """
        user_id = str(user_id)
        delivered = 0

        for connection_id in self.connections_for(user_id):
            connection = self.active_connections.get(connection_id)
            if connection is None:
                continue
            if await self.send(connection, event, payload):
                delivered += 1

        self.metrics.record_realtime_event(event, delivered)
        if delivered == 0:
            self.logger.debug("No live connection for realtime event", user_id=user_id, realtime_event=event)
        return delivered
