"""Quiz grading.

Pure functions: the same question bank and answer set always give the
same score.  Rounding is half-up (2.5 → 3), matching what students see
in the quiz UI, rather than Python's round-half-even.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from studyquest.models.course import Question
from studyquest.models.mission import DailyQuestion
from studyquest.models.quiz import AnswerIn, AnswerRecord
from studyquest.services.errors import ValidationError

# Used for questions without explicit points when the assignment doesn't
# declare a total to split.
DEFAULT_QUESTION_POINTS = 10.0

# XP floor per correct answer, so a quiz graded out of 10 points still
# pays out like one graded out of 100.
XP_PER_CORRECT_ANSWER = 10


def round_half_up(value: float, ndigits: int = 0) -> float:
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_points(value: float) -> float:
    return round_half_up(value, 2)


def round_int(value: float) -> int:
    return int(round_half_up(value, 0))


@dataclass(frozen=True, slots=True)
class QuizScore:
    total_questions: int
    correct_answers: int
    total_points: float
    points_earned: float
    score_percentage: int
    xp_awarded: int
    answers: tuple[AnswerRecord, ...]


def is_answer_correct(question: Question | DailyQuestion, answer: int | str | None) -> bool:
    """Index equality for multiple choice, trimmed case-insensitive text otherwise."""
    correct = question.correct_answer
    if answer is None or correct is None:
        return False

    if isinstance(correct, int) and not isinstance(correct, bool):
        return isinstance(answer, int) and not isinstance(answer, bool) and answer == correct

    return str(answer).strip().lower() == str(correct).strip().lower()


def question_point_values(
    questions: Sequence[Question], declared_total: float | None
) -> list[float]:
    """Point value of each question, in bank order.

    Explicit points win.  The rest split whatever the declared total leaves
    over (never below zero); with no declared total they get the default.
    """
    values: list[float | None] = [
        float(q.points)
        if isinstance(q.points, (int, float)) and not isinstance(q.points, bool)
        else None
        for q in questions
    ]
    unspecified = [i for i, v in enumerate(values) if v is None]
    if not unspecified:
        return [v for v in values if v is not None]

    if declared_total:
        specified_total = sum(v for v in values if v is not None)
        fill = max((declared_total - specified_total) / len(unspecified), 0.0)
    else:
        fill = DEFAULT_QUESTION_POINTS

    return [v if v is not None else fill for v in values]


def score_quiz(
    questions: Sequence[Question],
    answers: Sequence[AnswerIn],
    declared_total: float | None = None,
) -> QuizScore:
    by_id: dict[str, AnswerIn] = {}
    known_ids = {q.id for q in questions}
    for answer in answers:
        if answer.question_id not in known_ids:
            raise ValidationError(
                "invalid-answer", f"unknown question id {answer.question_id!r}"
            )
        if answer.question_id in by_id:
            raise ValidationError(
                "invalid-answer", f"duplicate answer for question {answer.question_id!r}"
            )
        by_id[answer.question_id] = answer

    values = question_point_values(questions, declared_total)

    records: list[AnswerRecord] = []
    correct_count = 0
    raw_points_earned = 0.0
    for question, value in zip(questions, values, strict=True):
        answer = by_id.get(question.id)
        timed_out = answer.timed_out if answer is not None else False
        # A timed-out response never carries an answer, whatever the client sent.
        selected = None if answer is None or timed_out else answer.selected
        correct = is_answer_correct(question, selected)
        if correct:
            correct_count += 1
            raw_points_earned += value
        records.append(
            AnswerRecord(
                question_id=question.id,
                selected=selected,
                is_correct=correct,
                timed_out=timed_out,
                points_awarded=round_points(value) if correct else 0.0,
            )
        )

    total_questions = len(questions)
    total_points = declared_total if declared_total else sum(values)
    if total_questions:
        percentage = round_int(correct_count / total_questions * 100)
    else:
        percentage = 0

    return QuizScore(
        total_questions=total_questions,
        correct_answers=correct_count,
        total_points=round_points(total_points),
        points_earned=round_points(raw_points_earned),
        score_percentage=min(100, max(0, percentage)),
        xp_awarded=xp_for_quiz(raw_points_earned, correct_count),
        answers=tuple(records),
    )


def xp_for_quiz(points_earned: float, correct_answers: int) -> int:
    return max(round_int(points_earned), correct_answers * XP_PER_CORRECT_ANSWER, 0)
