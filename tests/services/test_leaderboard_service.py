from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from studyquest.db.store import InMemoryDocumentStore
from studyquest.models.quiz import AnswerIn
from studyquest.services.cache import InMemoryCacheService
from studyquest.services.content import ContentService
from studyquest.services.errors import ValidationError
from studyquest.services.identity import IdentityService
from studyquest.services.leaderboard import LeaderboardService
from studyquest.services.progression import ProgressionEngine
from tests.conftest import seed_course


def _hits() -> float:
    return REGISTRY.get_sample_value("leaderboard_cache_total", {"result": "hit"}) or 0.0


@pytest.fixture
def leaderboard(
    store: InMemoryDocumentStore, content: ContentService, cache: InMemoryCacheService
) -> LeaderboardService:
    return LeaderboardService(store, content, cache, ttl_seconds=60)


@pytest.fixture
def identities(store: InMemoryDocumentStore, cache: InMemoryCacheService) -> IdentityService:
    return IdentityService(store, cache)


def test_global_ranks_by_xp_then_id(
    identities: IdentityService, leaderboard: LeaderboardService
) -> None:
    async def _setup() -> None:
        for sid, name, xp in (("b", "Bo", 50), ("a", None, 50), ("c", "Cy", 120)):
            await identities.register(sid, name)
            await identities.increment_xp(sid, xp)

    asyncio.run(_setup())
    entries = asyncio.run(leaderboard.global_leaderboard())
    assert [(e.rank, e.student_id, e.xp) for e in entries] == [
        (1, "c", 120),
        (2, "a", 50),
        (3, "b", 50),
    ]
    assert entries[1].display_name == "Anonymous Student"
    assert entries[0].level == "Intermediate"


def test_limit_applied_and_validated(
    identities: IdentityService, leaderboard: LeaderboardService
) -> None:
    for sid in ("a", "b", "c"):
        asyncio.run(identities.register(sid))
    assert len(asyncio.run(leaderboard.global_leaderboard(limit=2))) == 2
    with pytest.raises(ValidationError):
        asyncio.run(leaderboard.global_leaderboard(limit=0))


def test_second_read_hits_cache(
    identities: IdentityService, leaderboard: LeaderboardService
) -> None:
    asyncio.run(identities.register("a"))
    first = asyncio.run(leaderboard.global_leaderboard())
    before = _hits()
    second = asyncio.run(leaderboard.global_leaderboard())
    assert _hits() - before == 1
    assert first == second


def test_xp_award_invalidates_cached_board(
    content: ContentService,
    engine: ProgressionEngine,
    leaderboard: LeaderboardService,
) -> None:
    seed_course(content, course_id="bio-101")
    asyncio.run(engine.enroll("stu-1", "bio-101"))
    assert asyncio.run(leaderboard.global_leaderboard())[0].xp == 0

    answers = [AnswerIn(f"q{i}", 1) for i in range(1, 6)]
    asyncio.run(engine.submit_quiz("stu-1", "bio-101", 1, answers))
    assert asyncio.run(leaderboard.global_leaderboard())[0].xp == 50


def test_course_board_includes_course_progress(
    content: ContentService,
    engine: ProgressionEngine,
    leaderboard: LeaderboardService,
) -> None:
    seed_course(content, course_id="bio-101")
    for sid in ("stu-1", "stu-2"):
        asyncio.run(engine.enroll(sid, "bio-101"))
    answers = [AnswerIn(f"q{i}", 1) for i in range(1, 6)]
    asyncio.run(engine.submit_quiz("stu-2", "bio-101", 1, answers))

    entries = asyncio.run(leaderboard.course_leaderboard("bio-101"))
    assert [(e.student_id, e.course_progress) for e in entries] == [
        ("stu-2", 8),
        ("stu-1", 0),
    ]


def test_ttl_zero_disables_caching(
    store: InMemoryDocumentStore,
    content: ContentService,
    cache: InMemoryCacheService,
    identities: IdentityService,
) -> None:
    board = LeaderboardService(store, content, cache, ttl_seconds=0)
    asyncio.run(identities.register("a"))
    asyncio.run(board.global_leaderboard())
    assert cache._store == {}


def test_registration_invalidates_global_board(
    identities: IdentityService, leaderboard: LeaderboardService
) -> None:
    asyncio.run(identities.register("ana"))
    assert [e.student_id for e in asyncio.run(leaderboard.global_leaderboard())] == ["ana"]

    asyncio.run(identities.register("ben"))
    board = asyncio.run(leaderboard.global_leaderboard())
    assert [e.student_id for e in board] == ["ana", "ben"]


def test_increment_xp_invalidates_global_board(
    identities: IdentityService, leaderboard: LeaderboardService
) -> None:
    asyncio.run(identities.register("ana"))
    assert asyncio.run(leaderboard.global_leaderboard())[0].xp == 0

    asyncio.run(identities.increment_xp("ana", 30))
    assert asyncio.run(leaderboard.global_leaderboard())[0].xp == 30


def test_enrollment_invalidates_course_board(
    content: ContentService,
    engine: ProgressionEngine,
    leaderboard: LeaderboardService,
) -> None:
    seed_course(content, course_id="bio-101")
    asyncio.run(engine.enroll("ana", "bio-101"))
    board = asyncio.run(leaderboard.course_leaderboard("bio-101"))
    assert [e.student_id for e in board] == ["ana"]

    asyncio.run(engine.enroll("ben", "bio-101"))
    board = asyncio.run(leaderboard.course_leaderboard("bio-101"))
    assert [e.student_id for e in board] == ["ana", "ben"]
    # Enrolling creates the identity, so the global board changes too.
    assert len(asyncio.run(leaderboard.global_leaderboard())) == 2


class _DownCache(InMemoryCacheService):
    async def get(self, key: str) -> str | None:
        raise ConnectionError("redis unavailable")


def test_cache_outage_propagates(
    store: InMemoryDocumentStore, content: ContentService, identities: IdentityService
) -> None:
    asyncio.run(identities.register("a"))
    board = LeaderboardService(store, content, _DownCache(), ttl_seconds=60)
    with pytest.raises(ConnectionError):
        asyncio.run(board.global_leaderboard())
