# lms_chat/client/chat_panel.py
"""State behind the chat panel: thread list, badges, transcript, compose box.

Rendering lives elsewhere; this class only talks to the API client and keeps
the view state consistent with the server and with pushed messages.
"""
from typing import Dict, List, Optional
from uuid import UUID
import logging

from .api_client import ChatApiClient, ChatApiError
from ..schemas.chat_schemas import ChatOut, MessageOut, UserSummary

logger = logging.getLogger(__name__)


class ChatPanel:
    def __init__(self, api: ChatApiClient, user_id: UUID, role: str):
        self.api = api
        self.user_id = user_id
        self.role = role

        self.chats: List[ChatOut] = []
        self.unread: Dict[UUID, int] = {}
        self.active_chat_id: Optional[UUID] = None
        self.messages: List[MessageOut] = []

    # Queries
    @property
    def active_chat(self) -> Optional[ChatOut]:
        return self.find_chat(self.active_chat_id) if self.active_chat_id else None

    @property
    def total_unread(self) -> int:
        return sum(self.unread.values())

    def find_chat(self, chat_id: UUID) -> Optional[ChatOut]:
        return next((chat for chat in self.chats if chat.id == chat_id), None)

    def chat_for_course(self, course_id: UUID) -> Optional[ChatOut]:
        return next((chat for chat in self.chats if chat.course.id == course_id), None)

    def counterpart(self, chat: ChatOut) -> UserSummary:
        return chat.instructor if self.role == "student" else chat.student

    def can_start_chat(self, course_id: Optional[UUID]) -> bool:
        return self.role == "student" and course_id is not None and self.chat_for_course(course_id) is None

    @staticmethod
    def can_send(text: Optional[str]) -> bool:
        return bool(text and text.strip())

    # Actions
    async def open(self) -> bool:
        """Load the thread list and unread badges"""
        try:
            chats = await self.api.list_chats()
        except ChatApiError as e:
            logger.error(f"Failed to fetch chats: {e}")
            return False

        self.chats = chats
        self.unread = {chat.id: chat.unread_count for chat in chats}
        return True

    async def select(self, chat_id: UUID) -> bool:
        """Show a thread; fetching it marks its messages read on the server"""
        try:
            messages = await self.api.list_messages(chat_id)
        except ChatApiError as e:
            logger.error(f"Failed to fetch messages for {chat_id}: {e}")
            return False

        self.active_chat_id = chat_id
        self.messages = messages
        self.unread[chat_id] = 0
        return True

    async def handle_push(self, message: MessageOut):
        """Apply a newMessage event"""
        if message.chat_id == self.active_chat_id:
            self._append(message)
            try:
                await self.api.mark_read([message.id])
                self._append(message.model_copy(update={"read": True}))
            except ChatApiError as e:
                logger.error(f"Failed to mark message {message.id} read: {e}")
            self._touch_chat(message)
            return

        if self.find_chat(message.chat_id) is None:
            # First message of a thread this panel has never seen
            await self.open()
            return

        self.unread[message.chat_id] = self.unread.get(message.chat_id, 0) + 1
        self._touch_chat(message)

    async def send(self, text: str) -> Optional[MessageOut]:
        """Send to the other participant of the active thread"""
        chat = self.active_chat
        if chat is None or not self.can_send(text):
            return None

        try:
            message, _ = await self.api.send_message(chat.course.id, self.counterpart(chat).id, text)
        except ChatApiError as e:
            logger.error(f"Failed to send message: {e}")
            return None

        self._append(message)
        self._touch_chat(message)
        return message

    async def start_chat(self, course_id: UUID) -> Optional[ChatOut]:
        """Greet the course instructor, creating the thread, and open it"""
        if not self.can_start_chat(course_id):
            return None

        try:
            _, chat = await self.api.start_chat(course_id)
        except ChatApiError as e:
            logger.error(f"Failed to start chat for course {course_id}: {e}")
            return None

        await self.open()
        await self.select(chat.id)
        return self.find_chat(chat.id) or chat

    # Helpers
    def _append(self, message: MessageOut):
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[index] = message
                return
        self.messages.append(message)

    def _touch_chat(self, message: MessageOut):
        """Move the message's thread to the top with the new last message"""
        chat = self.find_chat(message.chat_id)
        if chat is None:
            return
        updated = chat.model_copy(update={"last_message": message})
        self.chats = [updated] + [c for c in self.chats if c.id != chat.id]
