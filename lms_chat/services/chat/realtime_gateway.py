# lms_chat/services/chat/realtime_gateway.py
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4
from fastapi import WebSocket
import json
import logging

from .presence_registry import PresenceRegistry

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    REGISTERED = "registered"
    CLOSED = "closed"


class ConnectionClosed(Exception):
    """Raised when sending on a connection that already closed"""


class ClientConnection:
    """One client WebSocket and where it is in its lifecycle.

    CONNECTING -> OPEN -> REGISTERED -> CLOSED; CLOSED can follow any state
    and is terminal.
    """

    def __init__(self, websocket: WebSocket):
        self.connection_id = uuid4().hex
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        self.user_id: Optional[str] = None

    async def accept(self):
        if self.state is not ConnectionState.CONNECTING:
            raise ConnectionClosed(f"Cannot accept connection in state {self.state.value}")
        await self.websocket.accept()
        self.state = ConnectionState.OPEN

    def mark_registered(self, user_id: UUID):
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CLOSED):
            raise ConnectionClosed(f"Cannot register connection in state {self.state.value}")
        self.user_id = str(user_id)
        self.state = ConnectionState.REGISTERED

    def mark_closed(self):
        self.state = ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state in (ConnectionState.OPEN, ConnectionState.REGISTERED)

    async def send_json(self, payload: Dict[str, Any]):
        if not self.is_open:
            raise ConnectionClosed(f"Connection {self.connection_id} is {self.state.value}")
        await self.websocket.send_text(json.dumps(payload))

    def __repr__(self) -> str:
        return f"<ClientConnection {self.connection_id} {self.state.value} user={self.user_id}>"


class RealtimeGateway:
    """Pushes chat events to whichever connection a user registered last."""

    def __init__(self, registry: Optional[PresenceRegistry] = None):
        self.registry: PresenceRegistry[ClientConnection] = registry or PresenceRegistry()

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        """Accept websocket connection"""
        connection = ClientConnection(websocket)
        await connection.accept()
        logger.info(f"Connection {connection.connection_id} opened")
        return connection

    async def register(self, connection: ClientConnection, user_id: UUID):
        """Make this connection the push target for user_id"""
        connection.mark_registered(user_id)
        self.registry.register(user_id, connection)
        logger.info(f"User {user_id} registered on connection {connection.connection_id}")

        await connection.send_json({
            "type": "registered",
            "userId": str(user_id),
            "connectionId": connection.connection_id
        })

    def disconnect(self, connection: ClientConnection):
        """Close out the connection and drop its presence entry if still current"""
        connection.mark_closed()
        self.registry.unregister(connection)
        logger.info(f"Connection {connection.connection_id} closed")

    async def send_error(self, connection: ClientConnection, message: str):
        try:
            await connection.send_json({"type": "error", "message": message})
        except Exception as e:
            logger.warning(f"Could not deliver error to {connection.connection_id}: {e}")

    async def push(self, user_id: UUID, event: Dict[str, Any]) -> bool:
        """Send an event to the user's live connection. Returns False when not delivered."""
        connection = self.registry.lookup(user_id)
        if connection is None:
            logger.debug(f"User {user_id} offline, skipping {event.get('type')} push")
            return False

        try:
            await connection.send_json(event)
            return True
        except Exception as e:
            logger.error(f"Error pushing {event.get('type')} to {user_id}: {e}")
            self.disconnect(connection)
            return False

    async def push_new_message(self, receiver_id: UUID, message: Dict[str, Any]) -> bool:
        return await self.push(receiver_id, {"type": "newMessage", "message": message})

    def is_user_online(self, user_id: UUID) -> bool:
        return self.registry.is_online(user_id)

    def online_users(self) -> List[str]:
        return self.registry.online_users()

    def close(self):
        self.registry.close()
