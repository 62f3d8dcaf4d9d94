# lms_chat/routers/chat/websocket_router.py
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import json
import logging

from ...core.exceptions import Unauthorized
from ...core.security import Identity, decode_access_token, token_from_request
from ...services.chat.realtime_gateway import ClientConnection, RealtimeGateway

logger = logging.getLogger(__name__)
router = APIRouter()

UNAUTHORIZED_CLOSE_CODE = 4001


async def _register(
    gateway: RealtimeGateway,
    connection: ClientConnection,
    identity: Identity,
    announced: Optional[str]
):
    """Register the connection for the announced user if it matches the token"""
    try:
        user_id = UUID(str(announced))
    except ValueError:
        await gateway.send_error(connection, "Invalid userId")
        return

    if user_id != identity.user_id:
        logger.warning(f"Connection {connection.connection_id} announced {user_id} but is authenticated as {identity.user_id}")
        await gateway.send_error(connection, "userId does not match the authenticated user")
        return

    await gateway.register(connection, user_id)


@router.websocket("/ws/chat")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for chat push notifications"""
    gateway: RealtimeGateway = websocket.app.state.gateway
    connection = await gateway.connect(websocket)

    try:
        token = token_from_request(websocket) or websocket.query_params.get("token")
        identity = decode_access_token(token)
    except Unauthorized as e:
        await gateway.send_error(connection, e.message)
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        gateway.disconnect(connection)
        return

    try:
        announced = websocket.query_params.get("userId")
        if announced:
            await _register(gateway, connection, identity, announced)

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            data = message.get("text")
            if data is None:
                # Binary frames carry no JSON event
                await gateway.send_error(connection, "Malformed event")
                continue
            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                await gateway.send_error(connection, "Malformed event")
                continue
            if not isinstance(event, dict):
                await gateway.send_error(connection, "Malformed event")
                continue

            event_type = event.get("type")

            if event_type == "register":
                await _register(gateway, connection, identity, event.get("userId"))

            elif event_type == "ping":
                await connection.send_json({"type": "pong"})

            else:
                await gateway.send_error(connection, f"Unknown event type: {event_type}")

    except WebSocketDisconnect:
        logger.info(f"User {identity.user_id} disconnected from chat")
    finally:
        gateway.disconnect(connection)
