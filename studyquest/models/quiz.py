from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from studyquest.models.course import QuestionAnswer


@dataclass(frozen=True, slots=True)
class AnswerIn:
    """One answer as produced by the quiz UI.

    ``selected`` is None when the student skipped or the per-question
    timer ran out (``timed_out=True``); either way it scores as wrong.
    """

    question_id: str
    selected: QuestionAnswer | None = None
    timed_out: bool = False


@dataclass(frozen=True, slots=True)
class QuizTiming:
    started_at: str  # ISO-8601
    completed_at: str  # ISO-8601
    time_taken_seconds: int


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    question_id: str
    selected: QuestionAnswer | None
    is_correct: bool
    timed_out: bool
    points_awarded: float

    def to_doc(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "selected": self.selected,
            "is_correct": self.is_correct,
            "timed_out": self.timed_out,
            "points_awarded": self.points_awarded,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> AnswerRecord:
        return AnswerRecord(
            question_id=doc["question_id"],
            selected=doc.get("selected"),
            is_correct=bool(doc.get("is_correct", False)),
            timed_out=bool(doc.get("timed_out", False)),
            points_awarded=float(doc.get("points_awarded", 0)),
        )


@dataclass(frozen=True, slots=True)
class QuizSubmission:
    """Graded weekly quiz.  Written once per (student, course, week), never updated."""

    student_id: str
    course_id: str
    week_number: int
    total_questions: int
    correct_answers: int
    total_points: float
    points_earned: float
    xp_awarded: int
    score_percentage: int
    time_taken_seconds: int
    started_at: str
    completed_at: str
    answers: tuple[AnswerRecord, ...]
    submitted_at: str

    def to_doc(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "week_number": self.week_number,
            "total_questions": self.total_questions,
            "correct_answers": self.correct_answers,
            "total_points": self.total_points,
            "points_earned": self.points_earned,
            "xp_awarded": self.xp_awarded,
            "score_percentage": self.score_percentage,
            "time_taken_seconds": self.time_taken_seconds,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "answers": [a.to_doc() for a in self.answers],
            "submitted_at": self.submitted_at,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> QuizSubmission:
        return QuizSubmission(
            student_id=doc["student_id"],
            course_id=doc["course_id"],
            week_number=int(doc["week_number"]),
            total_questions=int(doc["total_questions"]),
            correct_answers=int(doc["correct_answers"]),
            total_points=float(doc["total_points"]),
            points_earned=float(doc["points_earned"]),
            xp_awarded=int(doc["xp_awarded"]),
            score_percentage=int(doc["score_percentage"]),
            time_taken_seconds=int(doc.get("time_taken_seconds", 0)),
            started_at=doc.get("started_at", ""),
            completed_at=doc.get("completed_at", ""),
            answers=tuple(AnswerRecord.from_doc(a) for a in doc.get("answers", ())),
            submitted_at=doc.get("submitted_at", ""),
        )
