from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class WeekProgress:
    video_watched: bool = False
    assignment_completed: bool = False
    assignment_score: float | None = None
    assignment_submitted_at: str | None = None
    daily_challenges_completed: tuple[int, ...] = ()
    total_daily_points: int = 0

    def to_doc(self) -> dict[str, Any]:
        return {
            "video_watched": self.video_watched,
            "assignment_completed": self.assignment_completed,
            "assignment_score": self.assignment_score,
            "assignment_submitted_at": self.assignment_submitted_at,
            "daily_challenges_completed": list(self.daily_challenges_completed),
            "total_daily_points": self.total_daily_points,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> WeekProgress:
        return WeekProgress(
            video_watched=bool(doc.get("video_watched", False)),
            assignment_completed=bool(doc.get("assignment_completed", False)),
            assignment_score=doc.get("assignment_score"),
            assignment_submitted_at=doc.get("assignment_submitted_at"),
            daily_challenges_completed=tuple(doc.get("daily_challenges_completed", ())),
            total_daily_points=int(doc.get("total_daily_points", 0)),
        )


@dataclass(frozen=True, slots=True)
class StreakState:
    current: int = 0
    longest: int = 0
    last_activity_date: str | None = None  # dateKey, YYYY-MM-DD


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One student's standing in one course.

    ``current_week`` only moves forward and ``completed_weeks`` only
    grows.  Both are changed exclusively by the progression engine inside
    a store transaction.
    """

    student_id: str
    course_id: str
    current_week: int = 1
    completed_weeks: frozenset[int] = frozenset()
    overall_progress: int = 0
    weekly_progress: dict[int, WeekProgress] = field(default_factory=dict)
    streak: StreakState = StreakState()
    total_points: int = 0
    active: bool = True
    enrolled_at: str | None = None
    last_updated: str | None = None

    @staticmethod
    def new(*, student_id: str, course_id: str, enrolled_at: str) -> CourseProgress:
        return CourseProgress(
            student_id=student_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
            last_updated=enrolled_at,
        )

    def week(self, week_number: int) -> WeekProgress:
        return self.weekly_progress.get(week_number, WeekProgress())

    def with_week(self, week_number: int, week: WeekProgress) -> CourseProgress:
        weekly = dict(self.weekly_progress)
        weekly[week_number] = week
        return replace(self, weekly_progress=weekly)

    def to_doc(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "current_week": self.current_week,
            "completed_weeks": sorted(self.completed_weeks),
            "overall_progress": self.overall_progress,
            # Document stores want string keys.
            "weekly_progress": {
                str(n): wp.to_doc() for n, wp in sorted(self.weekly_progress.items())
            },
            "streak": {
                "current": self.streak.current,
                "longest": self.streak.longest,
                "last_activity_date": self.streak.last_activity_date,
            },
            "total_points": self.total_points,
            "active": self.active,
            "enrolled_at": self.enrolled_at,
            "last_updated": self.last_updated,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> CourseProgress:
        streak = doc.get("streak") or {}
        return CourseProgress(
            student_id=doc["student_id"],
            course_id=doc["course_id"],
            current_week=int(doc.get("current_week", 1)),
            completed_weeks=frozenset(int(w) for w in doc.get("completed_weeks", ())),
            overall_progress=int(doc.get("overall_progress", 0)),
            weekly_progress={
                int(n): WeekProgress.from_doc(wp)
                for n, wp in (doc.get("weekly_progress") or {}).items()
            },
            streak=StreakState(
                current=int(streak.get("current", 0)),
                longest=int(streak.get("longest", 0)),
                last_activity_date=streak.get("last_activity_date"),
            ),
            total_points=int(doc.get("total_points", 0)),
            active=bool(doc.get("active", True)),
            enrolled_at=doc.get("enrolled_at"),
            last_updated=doc.get("last_updated"),
        )


@dataclass(frozen=True, slots=True)
class WeekStatus:
    """One node of a student's level map."""

    week_number: int
    topic: str
    published: bool
    unlocked: bool
    completed: bool
    is_current: bool
    submitted: bool
    locked_reason: str | None = None


@dataclass(frozen=True, slots=True)
class RosterEntry:
    """An enrolled student as the instructor sees them in one course."""

    student_id: str
    display_name: str
    enrolled_at: str | None
    last_updated: str | None
    current_week: int
    completed_weeks: tuple[int, ...]
    overall_progress: int
    total_points: int
    current_streak: int
    weekly_scores: dict[int, float] = field(default_factory=dict)

    @staticmethod
    def build(progress: CourseProgress, display_name: str) -> RosterEntry:
        return RosterEntry(
            student_id=progress.student_id,
            display_name=display_name,
            enrolled_at=progress.enrolled_at,
            last_updated=progress.last_updated,
            current_week=progress.current_week,
            completed_weeks=tuple(sorted(progress.completed_weeks)),
            overall_progress=progress.overall_progress,
            total_points=progress.total_points,
            current_streak=progress.streak.current,
            weekly_scores={
                n: wp.assignment_score
                for n, wp in sorted(progress.weekly_progress.items())
                if wp.assignment_score is not None
            },
        )
