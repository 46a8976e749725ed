"""Courses and weekly content.

Instructor-side writes are plain upserts; the progression engine only ever
reads through this service.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from studyquest.db.store import (
    DocumentStore,
    course_key,
    progress_key,
    week_key,
)
from studyquest.models.course import Course, WeekContent
from studyquest.services.errors import (
    COURSE_NOT_FOUND,
    AlreadyExistsError,
    NotFoundError,
    ValidationError,
)
from studyquest.services.identity import require_id

logger = logging.getLogger(__name__)

MAX_COURSE_WEEKS = 52


class ContentService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def create_course(
        self,
        *,
        title: str,
        subject: str = "",
        duration_weeks: int | None = None,
        created_by: str | None = None,
        course_id: str | None = None,
    ) -> Course:
        title = title.strip()
        if not title:
            raise ValidationError("invalid-course", "title must be non-empty")
        if course_id is not None:
            course_id = require_id(course_id, "course_id")
        course = Course.new(
            title=title,
            subject=subject.strip(),
            created_by=created_by,
            course_id=course_id,
        )
        if duration_weeks is not None:
            if not 1 <= duration_weeks <= MAX_COURSE_WEEKS:
                raise ValidationError(
                    "invalid-course",
                    f"duration_weeks must be between 1 and {MAX_COURSE_WEEKS}",
                )
            course = replace(course, duration_weeks=duration_weeks)

        if not await self._store.conditional_create(course_key(course.id), course.to_doc()):
            logger.warning("Rejected duplicate course id=%s", course.id)
            raise AlreadyExistsError("course-exists", f"course {course.id} already exists")

        logger.info(
            "Created course title=%r weeks=%d",
            course.title,
            course.duration_weeks,
            extra={"course_id": course.id},
        )
        return course

    async def find_course(self, course_id: str) -> Course | None:
        doc = await self._store.get(course_key(course_id))
        return Course.from_doc(doc) if doc is not None else None

    async def get_course(self, course_id: str) -> Course:
        course = await self.find_course(course_id)
        if course is None:
            raise NotFoundError(COURSE_NOT_FOUND, f"course {course_id} not found")
        return course

    async def list_student_courses(self, student_id: str) -> list[Course]:
        """Courses the student is actively enrolled in, ordered by course id."""
        courses: list[Course] = []
        for _, doc in await self._store.list_prefix(progress_key(student_id, "")):
            if not doc.get("active", True):
                continue
            course = await self.find_course(doc["course_id"])
            if course is not None:
                courses.append(course)
        return sorted(courses, key=lambda c: c.id)

    async def upsert_week(self, content: WeekContent) -> WeekContent:
        course = await self.get_course(content.course_id)
        if not 1 <= content.week_number <= course.duration_weeks:
            raise ValidationError(
                "invalid-week",
                f"week_number must be between 1 and {course.duration_weeks}",
            )
        ids = [q.id for q in content.questions]
        if len(set(ids)) != len(ids):
            raise ValidationError("invalid-week", "question ids must be unique")

        key = week_key(content.course_id, content.week_number)
        await self._store.transactional_update([key], lambda txn: txn.set(key, content.to_doc()))
        logger.info(
            "Saved week content published=%s questions=%d",
            content.published,
            len(content.questions),
            extra={"course_id": content.course_id, "week_number": content.week_number},
        )
        return content

    async def get_week(self, course_id: str, week_number: int) -> WeekContent | None:
        doc = await self._store.get(week_key(course_id, week_number))
        return WeekContent.from_doc(doc) if doc is not None else None

    async def list_weeks(self, course_id: str) -> list[WeekContent]:
        return [
            WeekContent.from_doc(doc)
            for _, doc in await self._store.list_prefix(f"weeks/{course_id}/")
        ]
