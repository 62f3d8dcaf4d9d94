# lms_chat/services/directory_service.py
"""Read-only lookups of course and user records owned by other services."""
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from ..core.cache import CacheManager, cache_manager
from ..core.exceptions import NotFound
from ..models import Course, User
from ..schemas.chat_schemas import CourseSummary, UserSummary

logger = logging.getLogger(__name__)


class DirectoryService:
    def __init__(self, db: AsyncSession, cache: CacheManager = None):
        self.users = BaseService(User, db)
        self.courses = BaseService(Course, db)
        self.cache = cache or cache_manager

    async def get_user_summary(self, user_id: UUID) -> UserSummary:
        """Get name, avatar and role for a user; raises NotFound"""
        key = self.cache.make_key("user", user_id)
        cached = await self.cache.get(key)
        if cached:
            return UserSummary.model_validate(cached)

        user = await self.users.get(user_id)
        if not user:
            raise NotFound("User", str(user_id))

        summary = UserSummary.model_validate(user)
        await self.cache.set(key, summary.model_dump(mode="json"))
        return summary

    async def get_course_summary(self, course_id: UUID) -> CourseSummary:
        """Get title and instructor for a course; raises NotFound"""
        key = self.cache.make_key("course", course_id)
        cached = await self.cache.get(key)
        if cached:
            return CourseSummary.model_validate(cached)

        course = await self.courses.get(course_id)
        if not course:
            raise NotFound("Course", str(course_id))

        summary = CourseSummary.model_validate(course)
        await self.cache.set(key, summary.model_dump(mode="json"))
        return summary
