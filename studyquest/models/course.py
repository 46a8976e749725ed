from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

DEFAULT_COURSE_WEEKS = 12

QuestionAnswer = int | str


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    subject: str = ""
    duration_weeks: int = DEFAULT_COURSE_WEEKS
    enrolled_students: tuple[str, ...] = ()
    created_by: str | None = None

    @property
    def student_count(self) -> int:
        return len(self.enrolled_students)

    @staticmethod
    def new(
        *,
        title: str,
        subject: str = "",
        duration_weeks: int = DEFAULT_COURSE_WEEKS,
        created_by: str | None = None,
        course_id: str | None = None,
    ) -> Course:
        return Course(
            id=course_id or str(uuid4()),
            title=title,
            subject=subject,
            duration_weeks=duration_weeks,
            created_by=created_by,
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subject": self.subject,
            "duration_weeks": self.duration_weeks,
            "enrolled_students": list(self.enrolled_students),
            "student_count": self.student_count,
            "created_by": self.created_by,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> Course:
        return Course(
            id=doc["id"],
            title=doc.get("title", ""),
            subject=doc.get("subject", ""),
            # Courses created before duration was extracted fall back to 12.
            duration_weeks=doc.get("duration_weeks") or DEFAULT_COURSE_WEEKS,
            enrolled_students=tuple(doc.get("enrolled_students", ())),
            created_by=doc.get("created_by"),
        )


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    prompt: str
    type: str = "mcq"  # mcq|short_answer|essay
    options: tuple[str, ...] | None = None
    correct_answer: QuestionAnswer | None = None
    points: float | None = None
    explanation: str | None = None

    def to_doc(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "type": self.type,
            "options": list(self.options) if self.options is not None else None,
            "correct_answer": self.correct_answer,
            "points": self.points,
            "explanation": self.explanation,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> Question:
        options = doc.get("options")
        return Question(
            id=doc["id"],
            prompt=doc.get("prompt", ""),
            type=doc.get("type", "mcq"),
            options=tuple(options) if options is not None else None,
            correct_answer=doc.get("correct_answer"),
            points=doc.get("points"),
            explanation=doc.get("explanation"),
        )


@dataclass(frozen=True, slots=True)
class WeekContent:
    """Instructor-owned content for one week.  Read-only to the engine."""

    course_id: str
    week_number: int
    topic: str = ""
    description: str = ""
    video_uploaded: bool = False
    study_content_created: bool = False
    assignment_created: bool = False
    questions: tuple[Question, ...] = field(default_factory=tuple)
    total_points: float | None = None
    time_limit: int | None = None

    @property
    def published(self) -> bool:
        return self.video_uploaded or self.study_content_created or self.assignment_created

    @property
    def has_quiz(self) -> bool:
        return len(self.questions) > 0

    def to_doc(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "week_number": self.week_number,
            "topic": self.topic,
            "description": self.description,
            "video_uploaded": self.video_uploaded,
            "study_content_created": self.study_content_created,
            "assignment_created": self.assignment_created,
            "questions": [q.to_doc() for q in self.questions],
            "total_points": self.total_points,
            "time_limit": self.time_limit,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> WeekContent:
        return WeekContent(
            course_id=doc["course_id"],
            week_number=int(doc["week_number"]),
            topic=doc.get("topic", ""),
            description=doc.get("description", ""),
            video_uploaded=bool(doc.get("video_uploaded", False)),
            study_content_created=bool(doc.get("study_content_created", False)),
            assignment_created=bool(doc.get("assignment_created", False)),
            questions=tuple(Question.from_doc(q) for q in doc.get("questions") or ()),
            total_points=doc.get("total_points"),
            time_limit=doc.get("time_limit"),
        )
