from sqlalchemy import Column, Text, Boolean, Integer, DateTime, Uuid, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base


class Chat(Base):
    __tablename__ = "chats"

    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    instructor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Bumped by every append; gives messages their insertion sequence
    message_count = Column(Integer, nullable=False, default=0)
    last_message_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Relationships
    course = relationship("Course", lazy="joined")
    student = relationship("User", foreign_keys=[student_id], lazy="joined")
    instructor = relationship("User", foreign_keys=[instructor_id], lazy="joined")
    messages = relationship("Message", back_populates="chat", lazy="raise")

    __table_args__ = (
        UniqueConstraint("course_id", "student_id", "instructor_id", name="uq_chat_participants"),
    )

    def has_participant(self, user_id) -> bool:
        return user_id in (self.student_id, self.instructor_id)


class Message(Base):
    __tablename__ = "messages"

    chat_id = Column(Uuid(as_uuid=True), ForeignKey("chats.id"), nullable=False, index=True)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    receiver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    sequence = Column(Integer, nullable=False)
    read = Column(Boolean, default=False, nullable=False)

    # Relationships
    chat = relationship("Chat", back_populates="messages", lazy="raise")
    sender = relationship("User", foreign_keys=[sender_id], lazy="joined")
    receiver = relationship("User", foreign_keys=[receiver_id], lazy="joined")

    __table_args__ = (
        Index('idx_message_chat_order', 'chat_id', 'timestamp', 'sequence'),
        Index('idx_message_unread', 'receiver_id', 'read'),
    )
