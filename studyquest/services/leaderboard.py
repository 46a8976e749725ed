"""Global and per-course leaderboards, read-through cached.

Sequence on GET:
  build key -> cache hit? return -> miss: scan store, rank, cache, return

The progression engine deletes ``leaderboard:*`` whenever XP changes,
so the TTL only bounds staleness if an invalidation is ever missed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass

from studyquest.core.metrics import LEADERBOARD_CACHE
from studyquest.db.store import DocumentStore, progress_key, user_key
from studyquest.models.identity import DEFAULT_DISPLAY_NAME, StudentIdentity
from studyquest.services.cache import CacheService
from studyquest.services.content import ContentService
from studyquest.services.errors import ValidationError
from studyquest.services.levels import player_level

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    student_id: str
    display_name: str
    xp: int
    streak: int
    level: str
    course_progress: int | None = None


def _ranked(rows: list[dict], limit: int) -> list[LeaderboardEntry]:
    # XP descending; equal XP falls back to student id so ranks are stable.
    rows.sort(key=lambda r: (-r["xp"], r["student_id"]))
    return [
        LeaderboardEntry(rank=i, level=player_level(row["xp"]).name, **row)
        for i, row in enumerate(rows[:limit], start=1)
    ]


class LeaderboardService:
    def __init__(
        self,
        store: DocumentStore,
        content: ContentService,
        cache: CacheService,
        *,
        ttl_seconds: int,
    ) -> None:
        self._store = store
        self._content = content
        self._cache = cache
        self._ttl = ttl_seconds

    async def global_leaderboard(self, limit: int = DEFAULT_LIMIT) -> list[LeaderboardEntry]:
        limit = _check_limit(limit)
        cache_key = f"leaderboard:global:{limit}"
        cached = await self._cached(cache_key)
        if cached is not None:
            return cached

        rows = [
            _row(StudentIdentity.from_doc(doc))
            for _, doc in await self._store.list_prefix("users/")
        ]
        entries = _ranked(rows, limit)
        await self._populate(cache_key, entries)
        return entries

    async def course_leaderboard(
        self, course_id: str, limit: int = DEFAULT_LIMIT
    ) -> list[LeaderboardEntry]:
        limit = _check_limit(limit)
        course = await self._content.get_course(course_id)
        cache_key = f"leaderboard:course:{course_id}:{limit}"
        cached = await self._cached(cache_key)
        if cached is not None:
            return cached

        rows = []
        for student_id in course.enrolled_students:
            doc = await self._store.get(user_key(student_id))
            if doc is None:
                continue
            progress = await self._store.get(progress_key(student_id, course_id))
            row = _row(StudentIdentity.from_doc(doc))
            row["course_progress"] = int(progress.get("overall_progress", 0)) if progress else 0
            rows.append(row)

        entries = _ranked(rows, limit)
        await self._populate(cache_key, entries)
        return entries

    async def _cached(self, cache_key: str) -> list[LeaderboardEntry] | None:
        raw = await self._cache.get(cache_key)
        if raw is None:
            LEADERBOARD_CACHE.labels(result="miss").inc()
            return None
        LEADERBOARD_CACHE.labels(result="hit").inc()
        logger.debug("Leaderboard cache hit key=%s", cache_key)
        return [LeaderboardEntry(**e) for e in json.loads(raw)]

    async def _populate(self, cache_key: str, entries: list[LeaderboardEntry]) -> None:
        await self._cache.set(cache_key, json.dumps([asdict(e) for e in entries]), self._ttl)


def _row(identity: StudentIdentity) -> dict:
    return {
        "student_id": identity.student_id,
        "display_name": identity.display_name or DEFAULT_DISPLAY_NAME,
        "xp": identity.xp,
        "streak": identity.streak,
    }


def _check_limit(limit: int) -> int:
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationError("invalid-limit", f"limit must be between 1 and {MAX_LIMIT}")
    return limit
