from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from studyquest.models.course import QuestionAnswer

TASK_TYPES: tuple[str, ...] = ("login", "question", "focus")


@dataclass(frozen=True, slots=True)
class DailyQuestion:
    course_id: str
    course_title: str
    week_number: int
    question_id: str
    prompt: str
    type: str
    options: tuple[str, ...] | None
    correct_answer: QuestionAnswer | None


@dataclass(frozen=True, slots=True)
class DailyMissionRecord:
    """Per (student, dateKey).  Each slot's XP is 0 until awarded, then fixed."""

    student_id: str
    date_key: str
    created_at: str
    login_xp_awarded: int = 0
    question_xp_awarded: int = 0
    focus_xp_awarded: int = 0
    login_completed_at: str | None = None
    question_completed_at: str | None = None
    focus_completed_at: str | None = None
    question_answer: QuestionAnswer | None = None
    question_correct: bool = False
    focus_reflection: str | None = None

    @property
    def total_xp_awarded(self) -> int:
        return self.login_xp_awarded + self.question_xp_awarded + self.focus_xp_awarded

    def slot_xp(self, task_type: str) -> int:
        return getattr(self, f"{task_type}_xp_awarded")

    def to_doc(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "date_key": self.date_key,
            "created_at": self.created_at,
            "login_xp_awarded": self.login_xp_awarded,
            "question_xp_awarded": self.question_xp_awarded,
            "focus_xp_awarded": self.focus_xp_awarded,
            "login_completed_at": self.login_completed_at,
            "question_completed_at": self.question_completed_at,
            "focus_completed_at": self.focus_completed_at,
            "question_answer": self.question_answer,
            "question_correct": self.question_correct,
            "focus_reflection": self.focus_reflection,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> DailyMissionRecord:
        return DailyMissionRecord(
            student_id=doc["student_id"],
            date_key=doc["date_key"],
            created_at=doc.get("created_at", ""),
            login_xp_awarded=int(doc.get("login_xp_awarded", 0)),
            question_xp_awarded=int(doc.get("question_xp_awarded", 0)),
            focus_xp_awarded=int(doc.get("focus_xp_awarded", 0)),
            login_completed_at=doc.get("login_completed_at"),
            question_completed_at=doc.get("question_completed_at"),
            focus_completed_at=doc.get("focus_completed_at"),
            question_answer=doc.get("question_answer"),
            question_correct=bool(doc.get("question_correct", False)),
            focus_reflection=doc.get("focus_reflection"),
        )


@dataclass(frozen=True, slots=True)
class TaskState:
    completed: bool
    xp_awarded: int
    completed_at: str | None = None


@dataclass(frozen=True, slots=True)
class DailyMissionStatus:
    date_key: str
    created_at: str
    total_xp_awarded: int
    login: TaskState
    question: TaskState
    focus: TaskState
    daily_question: DailyQuestion | None
    question_attempted: bool
    question_answered_correct: bool
    question_answer: QuestionAnswer | None
    focus_response: str | None

    @staticmethod
    def from_record(
        record: DailyMissionRecord, daily_question: DailyQuestion | None
    ) -> DailyMissionStatus:
        return DailyMissionStatus(
            date_key=record.date_key,
            created_at=record.created_at,
            total_xp_awarded=record.total_xp_awarded,
            login=TaskState(
                completed=record.login_xp_awarded > 0,
                xp_awarded=record.login_xp_awarded,
                completed_at=record.login_completed_at,
            ),
            question=TaskState(
                completed=record.question_xp_awarded > 0,
                xp_awarded=record.question_xp_awarded,
                completed_at=record.question_completed_at,
            ),
            focus=TaskState(
                completed=record.focus_xp_awarded > 0,
                xp_awarded=record.focus_xp_awarded,
                completed_at=record.focus_completed_at,
            ),
            daily_question=daily_question,
            question_attempted=record.question_completed_at is not None,
            question_answered_correct=record.question_correct,
            question_answer=record.question_answer,
            focus_response=record.focus_reflection,
        )
