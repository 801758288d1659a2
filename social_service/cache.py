"""
Redis caching layer for Social Service
"""
import redis.asyncio as redis
from typing import Optional, List, Any
import json
import logging

from .config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis cache for derived social counters and the friendship index"""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.redis: Optional[redis.Redis] = client

    async def connect(self):
        """Connect to Redis"""
        if not settings.REDIS_ENABLED:
            logger.info("Redis caching is disabled")
            return

        try:
            self.redis = redis.from_url(
                f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}",
                password=settings.REDIS_PASSWORD or None,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Continuing without cache.")
            self.redis = None

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Disconnected from Redis")

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self.redis:
            return None

        try:
            value = await self.redis.get(key)
            if value is not None:
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"Error getting cache key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300):
        """Set value in cache with TTL"""
        if not self.redis:
            return

        try:
            await self.redis.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.error(f"Error setting cache key {key}: {e}")

    async def delete(self, *keys: str):
        """Delete keys from cache"""
        if not self.redis or not keys:
            return

        try:
            await self.redis.delete(*keys)
        except Exception as e:
            logger.error(f"Error deleting cache keys {keys}: {e}")

    # Social-specific cache methods
    def _stats_key(self, user_id: int) -> str:
        return f"social:stats:{user_id}"

    def _friends_key(self, user_id: int) -> str:
        return f"social:friends:{user_id}"

    async def get_stats(self, user_id: int) -> Optional[dict]:
        """Get cached social stats"""
        return await self.get(self._stats_key(user_id))

    async def set_stats(self, user_id: int, stats: dict):
        """Cache social stats"""
        await self.set(self._stats_key(user_id), stats, settings.CACHE_TTL_STATS)

    async def get_friend_ids(self, user_id: int) -> Optional[List[int]]:
        """Get cached friend id set"""
        return await self.get(self._friends_key(user_id))

    async def set_friend_ids(self, user_id: int, friend_ids: List[int]):
        """Cache friend id set"""
        await self.set(
            self._friends_key(user_id), sorted(friend_ids), settings.CACHE_TTL_FRIENDS
        )

    async def invalidate_user_cache(self, *user_ids: int):
        """Drop derived entries of every given user"""
        keys = []
        for user_id in user_ids:
            keys.append(self._stats_key(user_id))
            keys.append(self._friends_key(user_id))
        await self.delete(*keys)


# Global cache instance
cache = RedisCache()


async def get_cache() -> RedisCache:
    """Dependency for getting cache instance"""
    return cache
