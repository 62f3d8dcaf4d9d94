# lms_chat/client/realtime.py
"""Push subscription over the chat WebSocket."""
from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode
from uuid import UUID
import asyncio
import json
import logging

import websockets

from ..schemas.chat_schemas import MessageOut

logger = logging.getLogger(__name__)

MessageHandler = Callable[[MessageOut], Awaitable[None]]


class RealtimeSubscriber:
    """Registers the user and forwards newMessage events to a handler.

    Missed pushes are not replayed; callers reload the thread list after a
    reconnect.
    """

    def __init__(
        self,
        ws_url: str,
        user_id: UUID,
        token: str,
        on_message: MessageHandler,
        on_reconnect: Optional[Callable[[], Awaitable[None]]] = None,
        max_retries: int = 5,
        retry_delay: float = 1.0
    ):
        self.url = f"{ws_url}?{urlencode({'userId': str(user_id), 'token': token})}"
        self.user_id = user_id
        self.on_message = on_message
        self.on_reconnect = on_reconnect
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._stopped = False

    def stop(self):
        self._stopped = True

    async def handle_event(self, raw: str):
        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring malformed event: {raw[:100]}")
            return

        event_type = event.get("type")
        if event_type == "newMessage":
            await self.on_message(MessageOut.model_validate(event["message"]))
        elif event_type == "registered":
            logger.info(f"Registered for push as {event.get('userId')}")
        elif event_type == "error":
            logger.error(f"Server error: {event.get('message')}")

    async def run(self):
        attempts = 0
        while not self._stopped:
            try:
                async with websockets.connect(self.url) as ws:
                    if attempts and self.on_reconnect:
                        await self.on_reconnect()
                    attempts = 0
                    await ws.send(json.dumps({"type": "register", "userId": str(self.user_id)}))
                    async for raw in ws:
                        await self.handle_event(raw)
                        if self._stopped:
                            return
            except (OSError, websockets.exceptions.WebSocketException) as e:
                reason = e
            else:
                reason = "closed by server"

            if self._stopped:
                return
            attempts += 1
            if attempts > self.max_retries:
                logger.error(f"Giving up on push connection after {self.max_retries} retries: {reason}")
                raise ConnectionError(f"Push connection lost: {reason}")
            delay = self.retry_delay * 2 ** (attempts - 1)
            logger.warning(f"Push connection lost ({reason}); retrying in {delay:.1f}s")
            await asyncio.sleep(delay)
