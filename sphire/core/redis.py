"""
Redis connection, JSON caching and counters.

Every helper degrades to a no-op when the client is not connected, so the API
keeps serving straight from the database when Redis is down.
"""
import json
from typing import Optional, Any
import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from sphire.core.config import settings

logger = structlog.get_logger()


class RedisClient:
    """Async Redis client wrapper with caching utilities."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self):
        """Establish Redis connection, leaving the client disabled on failure."""
        client = aioredis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=10,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning("redis_unavailable", url=self.url, error=str(e))
            await client.aclose()
            return
        self.redis = client
        logger.info("redis_connected")

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """Get a JSON value from cache."""
        if not self.redis:
            return None
        value = await self.redis.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[int] = None
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache, JSON encoded unless already a string
            expire: Expiration time in seconds

        Returns:
            True if the value was written
        """
        if not self.redis:
            return False

        if not isinstance(value, str):
            value = json.dumps(value, default=str)

        await self.redis.set(key, value, ex=expire)
        return True

    async def delete(self, *keys: str) -> bool:
        """Delete keys from cache."""
        if not self.redis or not keys:
            return False
        await self.redis.delete(*keys)
        return True

    async def incr(self, key: str, amount: int = 1) -> int:
        """Increment counter."""
        if not self.redis:
            return 0
        return await self.redis.incrby(key, amount)

    async def expire(self, key: str, seconds: int) -> bool:
        """Set expiration on key."""
        if not self.redis:
            return False
        return await self.redis.expire(key, seconds)

    async def ping(self) -> bool:
        if not self.redis:
            return False
        return await self.redis.ping()


# Global Redis client instance
redis_client = RedisClient()


async def get_redis() -> RedisClient:
    """Dependency for getting Redis client."""
    return redis_client
