from __future__ import annotations

import pytest

from studyquest.models.progress import CourseProgress, StreakState
from studyquest.services.badges import evaluate_badges
from studyquest.services.levels import next_level, player_level, progress_to_next_level


@pytest.mark.parametrize(
    ("xp", "name"),
    [
        (0, "Beginner"),
        (99, "Beginner"),
        (100, "Intermediate"),
        (1499, "Expert"),
        (1500, "Legend"),
        (9999, "Master"),
        (10000, "Champion"),
        (250000, "Champion"),
    ],
)
def test_player_level_tiers(xp: int, name: str) -> None:
    assert player_level(xp).name == name


def test_next_level_none_at_top() -> None:
    assert next_level(50).name == "Intermediate"  # type: ignore[union-attr]
    assert next_level(10000) is None


def test_progress_to_next_level() -> None:
    progress = progress_to_next_level(300)
    assert (progress.current, progress.required, progress.percentage) == (200, 400, 50)
    assert progress_to_next_level(12000).percentage == 100


def _earned(progress: CourseProgress, total: int = 12) -> set[str]:
    return {b.id for b in evaluate_badges(progress, total) if b.earned}


def test_new_enrollment_has_no_badges() -> None:
    assert _earned(CourseProgress(student_id="s", course_id="c")) == set()


def test_badges_for_progressed_student() -> None:
    progress = CourseProgress(
        student_id="s",
        course_id="c",
        current_week=7,
        completed_weeks=frozenset(range(1, 7)),
        streak=StreakState(current=7, longest=7),
        total_points=1200,
    )
    assert _earned(progress) == {
        "first-week",
        "streak-master",
        "half-way",
        "point-collector",
        "perfectionist",
        "rocket-learner",
    }


def test_course_champion_and_speed_demon() -> None:
    # Completed more weeks than the week pointer suggests.
    progress = CourseProgress(
        student_id="s",
        course_id="c",
        current_week=1,
        completed_weeks=frozenset({1, 2, 3, 4}),
    )
    earned = _earned(progress, total=4)
    assert "course-champion" in earned
    assert "speed-demon" in earned
    assert "rocket-learner" not in earned
