# lms_chat/schemas/chat_schemas.py
"""Pydantic schemas for the chat API. JSON keys are camelCase."""
from typing import Dict, Generic, List, Optional, TypeVar
from datetime import datetime, timezone
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar('T')


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserSummary(CamelModel):
    id: UUID
    name: str
    avatar: Optional[str] = None
    role: str


class CourseSummary(CamelModel):
    id: UUID
    title: str
    instructor_id: UUID


class MessageOut(CamelModel):
    id: UUID
    chat_id: UUID
    sender: UserSummary
    receiver: UserSummary
    content: str
    timestamp: datetime
    read: bool

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite drops the offset on the way back
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class ChatOut(CamelModel):
    id: UUID
    course: CourseSummary
    student: UserSummary
    instructor: UserSummary
    last_message: Optional[MessageOut] = None
    unread_count: int = 0
    created_at: Optional[datetime] = None


# Requests
class SendMessageRequest(CamelModel):
    course_id: UUID
    receiver_id: UUID
    content: str = Field(..., description="Message text; must not be blank")


class MarkReadRequest(CamelModel):
    message_ids: List[UUID] = Field(default_factory=list)


class StartChatRequest(CamelModel):
    course_id: UUID


# Envelopes
class DataResponse(BaseModel, Generic[T]):
    data: T


class SendMessageResponse(BaseModel):
    data: MessageOut
    chat: ChatOut


class MarkReadResult(BaseModel):
    updated: int


class UnreadCounts(BaseModel):
    data: Dict[str, int]


class ErrorResponse(BaseModel):
    message: str
