from __future__ import annotations

from studyquest.models.course import Course, Question, WeekContent
from studyquest.services.daily_question import select_daily_question


def _week(course_id: str, n: int, n_questions: int, *, published: bool = True) -> WeekContent:
    return WeekContent(
        course_id=course_id,
        week_number=n,
        assignment_created=published,
        questions=tuple(
            Question(id=f"{course_id}-w{n}-q{i}", prompt=f"Q{i}", correct_answer=0)
            for i in range(n_questions)
        ),
    )


def _enrolled() -> list[tuple[Course, list[WeekContent]]]:
    return [
        (Course(id="bio", title="Biology"), [_week("bio", 1, 3), _week("bio", 2, 4)]),
        (Course(id="chem", title="Chemistry"), [_week("chem", 1, 5), _week("chem", 3, 2)]),
    ]


def test_same_inputs_same_question() -> None:
    first = select_daily_question("stu-1", "2026-03-02", _enrolled())
    second = select_daily_question("stu-1", "2026-03-02", _enrolled())
    assert first is not None
    assert first == second


def test_input_order_does_not_matter() -> None:
    enrolled = _enrolled()
    shuffled = [(c, list(reversed(ws))) for c, ws in reversed(enrolled)]
    assert select_daily_question("stu-1", "2026-03-02", enrolled) == select_daily_question(
        "stu-1", "2026-03-02", shuffled
    )


def test_selection_varies_across_days() -> None:
    picks = {
        select_daily_question("stu-1", f"2026-03-{day:02d}", _enrolled()).question_id  # type: ignore[union-attr]
        for day in range(1, 29)
    }
    assert len(picks) > 1


def test_picked_question_comes_from_enrolled_content() -> None:
    pick = select_daily_question("stu-9", "2026-04-01", _enrolled())
    assert pick is not None
    assert pick.course_id in ("bio", "chem")
    assert pick.question_id.startswith(f"{pick.course_id}-w{pick.week_number}-")
    assert pick.course_title in ("Biology", "Chemistry")


def test_none_without_courses() -> None:
    assert select_daily_question("stu-1", "2026-03-02", []) is None


def test_unpublished_and_empty_weeks_skipped() -> None:
    enrolled = [
        (
            Course(id="bio", title="Biology"),
            [_week("bio", 1, 3, published=False), _week("bio", 2, 0)],
        )
    ]
    assert select_daily_question("stu-1", "2026-03-02", enrolled) is None


def test_only_eligible_week_is_chosen() -> None:
    enrolled = [
        (
            Course(id="bio", title="Biology"),
            [_week("bio", 1, 0), _week("bio", 4, 1)],
        )
    ]
    pick = select_daily_question("stu-1", "2026-03-02", enrolled)
    assert pick is not None
    assert (pick.week_number, pick.question_id) == (4, "bio-w4-q0")
