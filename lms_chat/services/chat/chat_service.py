# lms_chat/services/chat/chat_service.py
from typing import Dict, Iterable, List, Optional, Protocol, Tuple
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..base_service import BaseService
from ..directory_service import DirectoryService
from .message_store import MessageStore
from ...core.config import settings
from ...core.exceptions import Forbidden, NotFound, ValidationError
from ...models.chat import Chat, Message
from ...schemas.chat_schemas import ChatOut, CourseSummary, MessageOut, UserSummary

logger = logging.getLogger(__name__)


class MessageNotifier(Protocol):
    async def push_new_message(self, receiver_id: UUID, message: dict) -> bool:
        ...


class ChatService(BaseService[Chat]):
    """Student/instructor chat threads scoped to a course.

    The store is the source of truth. Pushes to the receiver happen after the
    write commits and never affect the outcome of a send.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[MessageNotifier] = None,
        directory: Optional[DirectoryService] = None,
    ):
        super().__init__(Chat, db)
        self.store = MessageStore(db)
        self.directory = directory or DirectoryService(db)
        self.notifier = notifier

    async def list_chats(self, user_id: UUID) -> List[ChatOut]:
        """All chats of a user, most recent activity first, with last message and unread count"""
        chats = await self.store.list_chats_for_user(user_id)
        chat_ids = [chat.id for chat in chats]

        last_messages = await self.store.last_messages(chat_ids)
        unread = await self.store.unread_counts(user_id, chat_ids)

        return [
            self._chat_out(chat, last_messages.get(chat.id), unread.get(chat.id, 0))
            for chat in chats
        ]

    async def get_or_create_chat(self, course_id: UUID, student_id: UUID, instructor_id: UUID) -> Chat:
        """Get the chat for the triple, creating it on first use"""
        course = await self.directory.get_course_summary(course_id)
        student = await self.directory.get_user_summary(student_id)
        instructor = await self.directory.get_user_summary(instructor_id)
        self._check_participants(course, student, instructor)

        chat = await self.store.find_chat(course_id, student_id, instructor_id)
        if chat is None:
            chat = await self.store.create_chat(course_id, student_id, instructor_id)
            logger.info(f"Created chat {chat.id} for course {course_id} ({student_id} <-> {instructor_id})")
        return chat

    async def send_message(
        self,
        course_id: UUID,
        sender_id: UUID,
        receiver_id: UUID,
        content: str
    ) -> Tuple[MessageOut, ChatOut]:
        """Persist a message, then push it to the receiver if they are online"""
        self._validate_content(content)
        if sender_id == receiver_id:
            raise ValidationError("Cannot send a message to yourself")

        sender = await self.directory.get_user_summary(sender_id)
        receiver = await self.directory.get_user_summary(receiver_id)
        if sender.role == "student":
            student_id, instructor_id = sender.id, receiver.id
        else:
            student_id, instructor_id = receiver.id, sender.id

        chat = await self.get_or_create_chat(course_id, student_id, instructor_id)
        message = await self.store.append_message(chat.id, sender_id, receiver_id, content)
        message_out = MessageOut.model_validate(message)
        logger.info(f"Message {message.id} stored in chat {chat.id}")

        await self._push(receiver_id, message_out)

        chat = await self.store.get_chat(chat.id)
        unread = await self.store.unread_counts(sender_id, [chat.id])
        return message_out, self._chat_out(chat, message, unread.get(chat.id, 0))

    async def start_chat(self, student_id: UUID, course_id: UUID) -> Tuple[MessageOut, ChatOut]:
        """Open a chat with the course instructor using the canned greeting"""
        student = await self.directory.get_user_summary(student_id)
        if student.role != "student":
            raise Forbidden("Only students can start a chat with an instructor")

        course = await self.directory.get_course_summary(course_id)
        return await self.send_message(
            course_id=course.id,
            sender_id=student.id,
            receiver_id=course.instructor_id,
            content=settings.start_chat_message
        )

    async def list_messages(self, chat_id: UUID, viewer_id: UUID) -> List[MessageOut]:
        """Transcript of a chat, oldest first; marks what the viewer received as read"""
        chat = await self.store.get_chat(chat_id)
        if chat is None or not chat.has_participant(viewer_id):
            raise NotFound("Chat", str(chat_id))

        messages = await self.store.list_messages(chat_id)
        await self.mark_read_for_viewer(messages, viewer_id)
        return [MessageOut.model_validate(message) for message in messages]

    async def mark_read_for_viewer(self, messages: Iterable[Message], viewer_id: UUID) -> int:
        """Mark the unread messages in `messages` addressed to the viewer.

        The flip goes through the store's conditional update, so overlapping
        calls by the same viewer never count a message twice. Messages in the
        given list are read afterwards.
        """
        messages = list(messages)
        unread_ids = [m.id for m in messages if m.receiver_id == viewer_id and not m.read]
        if not unread_ids:
            return 0

        changed = await self.store.mark_read_for_viewer(viewer_id, unread_ids)
        for message in messages:
            if message.id in unread_ids and not message.read:
                message.read = True
        return changed

    async def mark_read(self, message_ids: Iterable[UUID], viewer_id: UUID) -> int:
        """Mark messages addressed to the viewer as read; returns how many changed"""
        return await self.store.mark_read_for_viewer(viewer_id, message_ids)

    async def get_unread_counts(self, user_id: UUID) -> Dict[str, int]:
        counts = await self.store.unread_counts(user_id)
        return {str(chat_id): count for chat_id, count in counts.items()}

    # Helpers
    def _validate_content(self, content: Optional[str]):
        if content is None or not content.strip():
            raise ValidationError("Message content cannot be empty")
        if len(content) > settings.max_message_length:
            raise ValidationError(
                f"Message content exceeds {settings.max_message_length} characters"
            )

    def _check_participants(self, course: CourseSummary, student: UserSummary, instructor: UserSummary):
        if student.role != "student":
            raise ValidationError(f"User {student.id} is not a student")
        if instructor.role != "instructor":
            raise ValidationError(f"User {instructor.id} is not an instructor")
        if course.instructor_id != instructor.id:
            raise ValidationError(f"User {instructor.id} does not teach course {course.id}")

    async def _push(self, receiver_id: UUID, message: MessageOut):
        if self.notifier is None:
            return
        try:
            delivered = await self.notifier.push_new_message(
                receiver_id, message.model_dump(mode="json", by_alias=True)
            )
            if not delivered:
                logger.info(f"Receiver {receiver_id} offline; message {message.id} waits for next fetch")
        except Exception:
            logger.exception(f"Push of message {message.id} to {receiver_id} failed")

    def _chat_out(self, chat: Chat, last_message: Optional[Message], unread_count: int) -> ChatOut:
        return ChatOut(
            id=chat.id,
            course=CourseSummary.model_validate(chat.course),
            student=UserSummary.model_validate(chat.student),
            instructor=UserSummary.model_validate(chat.instructor),
            last_message=MessageOut.model_validate(last_message) if last_message else None,
            unread_count=unread_count,
            created_at=chat.created_at
        )
