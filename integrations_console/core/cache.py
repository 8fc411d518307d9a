"""Redis-backed query cache.

Reads of backend tables are cached for one poll interval. Mutations
invalidate the keys they affect as soon as they succeed, so a fresh read
follows every successful write.
"""

from typing import Any, Awaitable, Callable, Optional
import json
import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from integrations_console.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class QueryCache:
    """Query cache keyed by ``<scope>:<owner>``."""

    def __init__(self, client: Optional[redis.Redis] = None, prefix: str = "console", ttl: Optional[int] = None):
        self.client = client
        self.prefix = prefix
        self.ttl = ttl if ttl is not None else settings.cache_ttl

    async def connect(self):
        """Connect to Redis."""
        self.client = redis.from_url(settings.redis_url, decode_responses=True)
        try:
            await self.client.ping()
            logger.info("Connected to Redis query cache")
        except RedisError as e:
            logger.warning(f"Redis unavailable, query cache disabled: {e}")
            await self.client.aclose()
            self.client = None

    async def disconnect(self):
        """Disconnect from Redis."""
        if self.client:
            await self.client.aclose()
            self.client = None

    def scoped(self, owner: str) -> "QueryCache":
        """A view of this cache whose keys are private to ``owner``."""
        return QueryCache(client=self.client, prefix=f"{self.prefix}:{owner}", ttl=self.ttl)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        if not self.client:
            return None
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        if not self.client:
            return
        try:
            await self.client.set(self._key(key), json.dumps(value, default=str), ex=self.ttl)
        except RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for ``key`` or fetch and cache it."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        await self.set(key, value)
        return value

    async def invalidate(self, *scopes: str) -> None:
        """Drop every key under the given scopes."""
        if not self.client:
            return
        try:
            for scope in scopes:
                keys = [k async for k in self.client.scan_iter(match=self._key(f"{scope}*"))]
                if keys:
                    await self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"Cache invalidation failed for {scopes}: {e}")


# Global cache instance
query_cache = QueryCache()
