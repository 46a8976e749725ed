from __future__ import annotations

import asyncio
import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from studyquest.api.dependencies import content_service, document_store
from studyquest.db.store import InMemoryDocumentStore
from studyquest.main import app
from studyquest.models.course import Course, Question, WeekContent
from studyquest.services.cache import InMemoryCacheService, cache_service
from studyquest.services.content import ContentService
from studyquest.services.progression import ProgressionEngine


@pytest.fixture(autouse=True)
def reset_document_store() -> None:
    """Clear the app's in-memory document store between tests."""
    if isinstance(document_store, InMemoryDocumentStore):
        document_store.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Engine fixtures for service-level tests
# ---------------------------------------------------------------------------


class FakeClock:
    """Settable clock.  ``advance(days=1)`` moves to the next calendar day."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2026, 3, 2, 15, 0, tzinfo=datetime.UTC)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + datetime.timedelta(**kwargs)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def cache() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def content(store: InMemoryDocumentStore) -> ContentService:
    return ContentService(store)


@pytest.fixture
def engine(
    store: InMemoryDocumentStore,
    content: ContentService,
    cache: InMemoryCacheService,
    clock: FakeClock,
) -> ProgressionEngine:
    return ProgressionEngine(store, content, cache, tz=ZoneInfo("UTC"), clock=clock)


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


def make_questions(n: int = 5, points: float | None = 10) -> tuple[Question, ...]:
    """``n`` multiple-choice questions whose correct answer is always index 1."""
    return tuple(
        Question(
            id=f"q{i}",
            prompt=f"Question {i}?",
            type="mcq",
            options=("a", "b", "c", "d"),
            correct_answer=1,
            points=points,
        )
        for i in range(1, n + 1)
    )


def seed_course(
    content: ContentService,
    *,
    course_id: str = "bio-101",
    weeks: int = 12,
    published_weeks: int | None = None,
    questions_per_week: int = 5,
) -> Course:
    """Create a course and publish a quiz for each of its first weeks."""

    async def _seed() -> Course:
        course = await content.create_course(
            title="Biology", subject="science", duration_weeks=weeks, course_id=course_id
        )
        for n in range(1, (published_weeks if published_weeks is not None else weeks) + 1):
            await content.upsert_week(
                WeekContent(
                    course_id=course_id,
                    week_number=n,
                    topic=f"Topic {n}",
                    assignment_created=True,
                    questions=make_questions(questions_per_week),
                )
            )
        return course

    return asyncio.run(_seed())


@pytest.fixture
def seed_app_course():
    """Seed a course into the app-wide content service (for API tests)."""

    def _seed(**kwargs) -> Course:
        return seed_course(content_service, **kwargs)

    return _seed
