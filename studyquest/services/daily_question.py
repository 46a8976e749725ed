"""Question-of-the-day selection.

The choice is a pure function of (student, date, enrolled content): no
"already picked" state is stored, so two requests on the same day agree
without coordinating.  Each level (course, week, question) hashes with
its own salt so the three picks are independent of each other.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

from studyquest.models.course import Course, WeekContent
from studyquest.models.mission import DailyQuestion


def _pick(student_id: str, date_key: str, salt: str, n: int) -> int:
    digest = hashlib.sha256(f"{student_id}|{date_key}|{salt}".encode()).digest()
    return int.from_bytes(digest[:8], "big") % n


def select_daily_question(
    student_id: str,
    date_key: str,
    enrolled: Sequence[tuple[Course, Sequence[WeekContent]]],
) -> DailyQuestion | None:
    """Pick today's question from the student's enrolled courses.

    Only published weeks with a question bank are eligible.  Returns None
    when nothing is eligible.  Input order doesn't matter: courses are
    sorted by id and weeks by number before picking.
    """
    candidates: list[tuple[Course, list[WeekContent]]] = []
    for course, weeks in sorted(enrolled, key=lambda cw: cw[0].id):
        eligible = sorted(
            (w for w in weeks if w.published and w.has_quiz),
            key=lambda w: w.week_number,
        )
        if eligible:
            candidates.append((course, eligible))

    if not candidates:
        return None

    course, weeks = candidates[_pick(student_id, date_key, "course", len(candidates))]
    week = weeks[_pick(student_id, date_key, "week", len(weeks))]
    question = week.questions[_pick(student_id, date_key, "question", len(week.questions))]

    return DailyQuestion(
        course_id=course.id,
        course_title=course.title,
        week_number=week.week_number,
        question_id=question.id,
        prompt=question.prompt,
        type=question.type,
        options=question.options,
        correct_answer=question.correct_answer,
    )
