# lms_chat/client/api_client.py
"""HTTP client for the chat API."""
from typing import Iterable, List, Optional, Tuple
from uuid import UUID
import logging

import httpx

from ..schemas.chat_schemas import ChatOut, MessageOut

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/chat"


class ChatApiError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class ChatApiClient:
    """Thin async wrapper; every call unwraps the {"data": ...} envelope"""

    def __init__(
        self,
        base_url: str,
        token: str,
        cookie_name: str = "token",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.client.cookies.set(cookie_name, token)

    async def close(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self.client.request(method, API_PREFIX + path, **kwargs)
        except httpx.HTTPError as e:
            raise ChatApiError(0, f"Request failed: {e}") from e

        if response.is_error:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise ChatApiError(response.status_code, message)
        return response.json()

    async def list_chats(self) -> List[ChatOut]:
        body = await self._request("GET", "/chats")
        return [ChatOut.model_validate(item) for item in body["data"]]

    async def list_messages(self, chat_id: UUID) -> List[MessageOut]:
        body = await self._request("GET", f"/messages/{chat_id}")
        return [MessageOut.model_validate(item) for item in body["data"]]

    async def send_message(self, course_id: UUID, receiver_id: UUID, content: str) -> Tuple[MessageOut, ChatOut]:
        body = await self._request("POST", "/send", json={
            "courseId": str(course_id),
            "receiverId": str(receiver_id),
            "content": content
        })
        return MessageOut.model_validate(body["data"]), ChatOut.model_validate(body["chat"])

    async def start_chat(self, course_id: UUID) -> Tuple[MessageOut, ChatOut]:
        body = await self._request("POST", "/start", json={"courseId": str(course_id)})
        return MessageOut.model_validate(body["data"]), ChatOut.model_validate(body["chat"])

    async def mark_read(self, message_ids: Iterable[UUID]) -> int:
        body = await self._request("POST", "/mark-read", json={
            "messageIds": [str(message_id) for message_id in message_ids]
        })
        return body["data"]["updated"]
