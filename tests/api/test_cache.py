"""Cache backends behind the leaderboard read-through cache."""

from __future__ import annotations

import asyncio
import fnmatch

from studyquest.services.cache import CacheService, InMemoryCacheService, RedisCacheService


class _FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisCacheService."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for k in keys:
            self.data.pop(k, None)

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        return 0, [k for k in self.data if fnmatch.fnmatch(k, match)]


def test_backends_satisfy_protocol() -> None:
    assert isinstance(InMemoryCacheService(), CacheService)
    assert isinstance(RedisCacheService(_FakeRedis()), CacheService)


def test_in_memory_delete_pattern_only_hits_prefix() -> None:
    cache = InMemoryCacheService()

    async def _run() -> None:
        await cache.set("leaderboard:global:10", "[]", 60)
        await cache.set("leaderboard:course:bio:10", "[]", 60)
        await cache.set("other:key", "x", 60)
        await cache.delete_pattern("leaderboard:*")
        assert await cache.get("leaderboard:global:10") is None
        assert await cache.get("leaderboard:course:bio:10") is None
        assert await cache.get("other:key") == "x"

    asyncio.run(_run())


def test_redis_keys_are_prefixed_and_expire() -> None:
    redis = _FakeRedis()
    cache = RedisCacheService(redis)

    async def _run() -> None:
        await cache.set("leaderboard:global:10", "[]", 60)
        assert redis.data == {"cache:leaderboard:global:10": "[]"}
        assert redis.ttls["cache:leaderboard:global:10"] == 60
        assert await cache.get("leaderboard:global:10") == "[]"

    asyncio.run(_run())


def test_redis_zero_ttl_skips_write() -> None:
    redis = _FakeRedis()
    asyncio.run(RedisCacheService(redis).set("leaderboard:global:10", "[]", 0))
    assert redis.data == {}


def test_redis_delete_pattern() -> None:
    redis = _FakeRedis()
    cache = RedisCacheService(redis)

    async def _run() -> None:
        await cache.set("leaderboard:global:10", "[]", 60)
        await cache.set("session:abc", "x", 60)
        await cache.delete_pattern("leaderboard:*")

    asyncio.run(_run())
    assert list(redis.data) == ["cache:session:abc"]
