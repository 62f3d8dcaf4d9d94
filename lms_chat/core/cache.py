# lms_chat/core/cache.py
"""Redis caching for collaborator lookups."""
import json
import logging
from typing import Any, Optional, Union
from datetime import timedelta
import redis.asyncio as redis
from .config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    def __init__(self, url: str = None, enabled: bool = None):
        self.url = url or settings.redis_url
        self.enabled = settings.cache_enabled if enabled is None else enabled
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Initialize Redis connection."""
        if self.enabled and not self.redis:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    @staticmethod
    def make_key(*parts: Any) -> str:
        return "lms_chat:" + ":".join(str(part) for part in parts)

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        if not self.enabled:
            return None
        await self.connect()

        try:
            value = await self.redis.get(key)
            if value:
                return json.loads(value)
        except Exception as e:
            logger.debug(f"Cache get failed for {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set value in cache."""
        if not self.enabled:
            return False
        await self.connect()

        if expire is None:
            expire = settings.cache_ttl_seconds
        if isinstance(expire, timedelta):
            expire = int(expire.total_seconds())
        try:
            return bool(await self.redis.setex(key, expire, json.dumps(value)))
        except Exception as e:
            logger.debug(f"Cache set failed for {key}: {e}")
            return False


# Global cache instance
cache_manager = CacheManager()
