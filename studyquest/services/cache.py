"""Read-through cache used for leaderboards.

Leaderboards scan every identity (global) or every enrolled student
(per course), which is the most expensive read the service does and the
one students refresh the most.  Entries are written with a TTL as a
safety net and deleted explicitly whenever XP is awarded, so a student
sees their new rank on the next request.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from studyquest.db.redis import redis_pool

# Every cached leaderboard lives under this prefix.
LEADERBOARD_CACHE_PATTERN = "leaderboard:*"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob pattern (e.g., 'leaderboard:*')."""
        ...


class InMemoryCacheService:
    """In-process cache for dev and tests, no TTL enforcement."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache, shared across all API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            # TTL 0 means caching is switched off.
            return
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server while it walks the keyspace.
        cursor = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                await self._redis.delete(*keys)
            if cursor == 0:
                break


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
