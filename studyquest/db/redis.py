"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a connection pool is
created at import time; when it is unset ``redis_pool`` is None and the
leaderboard cache falls back to an in-process dict.

Redis only ever holds derived data (cached leaderboards).  Progress,
submissions and XP live in the document store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from studyquest.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis; mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, leaderboard cache is in-process")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        # A cold cache is not fatal: leaderboards are recomputed from the
        # store on every miss.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
