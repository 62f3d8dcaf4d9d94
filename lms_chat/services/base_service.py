# lms_chat/services/base_service.py
"""Base service with common read operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Type, Any, Optional, TypeVar, Generic

# Define generic type
T = TypeVar('T')


class BaseService(Generic[T]):
    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any, include_deleted: bool = False) -> Optional[T]:
        stmt = select(self.model).where(self.model.id == id)

        # Add soft delete filter if model has is_deleted field
        if hasattr(self.model, 'is_deleted') and not include_deleted:
            stmt = stmt.where(self.model.is_deleted == False)

        result = await self.db.execute(stmt)
        return result.unique().scalar_one_or_none()
