# sms_api/core/cache.py
"""Redis caching implementation."""
import json
import logging
from typing import Any, Optional, Union
from datetime import timedelta
import redis.asyncio as redis
from .config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.redis: Optional[redis.Redis] = None

    async def initialize(self):
        """Initialize Redis connection."""
        if not self.enabled:
            logger.info("Cache disabled by configuration")
            return
        if not self.redis:
            self.redis = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True
            )

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def _client(self) -> Optional[redis.Redis]:
        if not self.enabled:
            return None
        if not self.redis:
            await self.initialize()
        return self.redis

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache; misses on any Redis failure."""
        client = await self._client()
        if client is None:
            return None
        try:
            value = await client.get(key)
            if value is not None:
                return json.loads(value)
        except Exception as e:
            logger.error(f"Cache get error for {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set value in cache."""
        client = await self._client()
        if client is None:
            return False
        try:
            serialized = json.dumps(value, default=str)
            if expire:
                if isinstance(expire, timedelta):
                    expire = int(expire.total_seconds())
                return bool(await client.setex(key, expire, serialized))
            return bool(await client.set(key, serialized))
        except Exception as e:
            logger.error(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        client = await self._client()
        if client is None:
            return False
        try:
            return bool(await client.delete(key))
        except Exception as e:
            logger.error(f"Cache delete error for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern."""
        client = await self._client()
        if client is None:
            return 0
        deleted = 0
        try:
            async for key in client.scan_iter(match=pattern):
                deleted += await client.delete(key)
        except Exception as e:
            logger.error(f"Cache pattern delete error for {pattern}: {e}")
        return deleted

    async def health(self) -> dict:
        if not self.enabled:
            return {"enabled": False, "available": False}
        client = await self._client()
        try:
            await client.ping()
            return {"enabled": True, "available": True}
        except Exception as e:
            logger.warning(f"Cache health check failed: {e}")
            return {"enabled": True, "available": False, "error": str(e)}


# Global cache instance
cache_manager = CacheManager(enabled=settings.cache_enabled)

