# lms_chat/models/__init__.py
"""Import all models here, if needed for Alembic migration."""
from .base import Base
from .user import User, USER_ROLES
from .course import Course
from .chat import Chat, Message

__all__ = ["Base", "User", "USER_ROLES", "Course", "Chat", "Message"]
