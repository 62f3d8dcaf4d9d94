# lms_chat/services/chat/message_store.py
"""Persistence for chats and messages."""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update, and_, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..base_service import BaseService
from ...models.chat import Chat, Message

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MessageStore(BaseService[Message]):
    def __init__(self, db: AsyncSession):
        super().__init__(Message, db)

    async def get_chat(self, chat_id: UUID) -> Optional[Chat]:
        stmt = select(Chat).where(
            and_(Chat.id == chat_id, Chat.is_deleted == False)
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def find_chat(self, course_id: UUID, student_id: UUID, instructor_id: UUID) -> Optional[Chat]:
        stmt = select(Chat).where(
            and_(
                Chat.course_id == course_id,
                Chat.student_id == student_id,
                Chat.instructor_id == instructor_id,
                Chat.is_deleted == False
            )
        )
        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def create_chat(self, course_id: UUID, student_id: UUID, instructor_id: UUID) -> Chat:
        """Insert a chat for the triple, or return the row a concurrent request created first"""
        chat = Chat(
            course_id=course_id,
            student_id=student_id,
            instructor_id=instructor_id,
            message_count=0
        )
        self.db.add(chat)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.find_chat(course_id, student_id, instructor_id)
            if existing is None:
                raise
            logger.info(f"Chat for course {course_id} created concurrently, reusing {existing.id}")
            return existing

        return await self.get_chat(chat.id)

    async def list_chats_for_user(self, user_id: UUID) -> List[Chat]:
        """Chats the user takes part in, most recent activity first"""
        stmt = select(Chat).where(
            and_(
                or_(Chat.student_id == user_id, Chat.instructor_id == user_id),
                Chat.is_deleted == False
            )
        ).order_by(
            Chat.last_message_at.is_(None),
            Chat.last_message_at.desc(),
            Chat.created_at.desc()
        )
        result = await self.db.execute(stmt)
        return list(result.unique().scalars().all())

    async def append_message(self, chat_id: UUID, sender_id: UUID, receiver_id: UUID, content: str) -> Message:
        """Append a message with the next per-chat sequence number and commit"""
        # Single-row counter bump; the row stays locked until commit
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(message_count=Chat.message_count + 1)
            .execution_options(synchronize_session=False)
        )
        row = (await self.db.execute(
            select(Chat.message_count, Chat.last_message_at).where(Chat.id == chat_id)
        )).one()
        sequence, last_message_at = row

        timestamp = datetime.now(timezone.utc)
        last_message_at = _as_utc(last_message_at)
        if last_message_at is not None and last_message_at > timestamp:
            timestamp = last_message_at

        message = Message(
            chat_id=chat_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            timestamp=timestamp,
            sequence=sequence,
            read=False
        )
        self.db.add(message)
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(last_message_at=timestamp)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        stmt = select(Message).where(Message.id == message.id).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.unique().scalar_one()

    async def list_messages(self, chat_id: UUID) -> List[Message]:
        """Messages of a chat, oldest first; same-timestamp ties keep insertion order"""
        stmt = select(Message).where(
            and_(
                Message.chat_id == chat_id,
                Message.is_deleted == False
            )
        ).order_by(Message.timestamp.asc(), Message.sequence.asc())

        result = await self.db.execute(stmt)
        return list(result.unique().scalars().all())

    async def last_messages(self, chat_ids: Iterable[UUID]) -> Dict[UUID, Message]:
        """Most recent message of each chat"""
        chat_ids = list(chat_ids)
        if not chat_ids:
            return {}

        latest = (
            select(Message.chat_id, func.max(Message.sequence).label("sequence"))
            .where(and_(Message.chat_id.in_(chat_ids), Message.is_deleted == False))
            .group_by(Message.chat_id)
            .subquery()
        )
        stmt = select(Message).join(
            latest,
            and_(Message.chat_id == latest.c.chat_id, Message.sequence == latest.c.sequence)
        )
        result = await self.db.execute(stmt)
        return {message.chat_id: message for message in result.unique().scalars().all()}

    async def unread_counts(self, viewer_id: UUID, chat_ids: Optional[Iterable[UUID]] = None) -> Dict[UUID, int]:
        """Per-chat count of messages addressed to the viewer and not yet read"""
        stmt = select(Message.chat_id, func.count(Message.id)).where(
            and_(
                Message.receiver_id == viewer_id,
                Message.read == False,
                Message.is_deleted == False
            )
        ).group_by(Message.chat_id)
        if chat_ids is not None:
            stmt = stmt.where(Message.chat_id.in_(list(chat_ids)))

        result = await self.db.execute(stmt)
        return {chat_id: count for chat_id, count in result.all()}

    async def mark_read_for_viewer(self, viewer_id: UUID, message_ids: Iterable[UUID]) -> int:
        """Flip read on the given messages addressed to the viewer.

        One conditional UPDATE, so a message is counted by exactly one caller
        even when the same viewer reads from two places at once. Returns the
        number of rows actually changed.
        """
        message_ids = list(set(message_ids))
        if not message_ids:
            return 0

        stmt = update(Message).where(
            and_(
                Message.id.in_(message_ids),
                Message.receiver_id == viewer_id,
                Message.read == False
            )
        ).values(read=True)
        result = await self.db.execute(stmt)
        await self.db.commit()

        changed = result.rowcount or 0
        if changed:
            logger.info(f"Marked {changed} message(s) read for {viewer_id}")
        return changed
