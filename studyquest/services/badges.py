"""Achievement badges, derived from a course progress record.

Badges are never stored: they are recomputed from progress on every
read, so they can't drift from the numbers they describe.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass

from studyquest.models.progress import CourseProgress

Requirement = Callable[[CourseProgress, int], bool]


@dataclass(frozen=True, slots=True)
class BadgeRule:
    id: str
    name: str
    description: str
    requirement: Requirement


@dataclass(frozen=True, slots=True)
class Badge:
    id: str
    name: str
    description: str
    earned: bool


BADGE_RULES: tuple[BadgeRule, ...] = (
    BadgeRule(
        "first-week",
        "First Steps",
        "Complete your first week",
        lambda p, total: len(p.completed_weeks) >= 1,
    ),
    BadgeRule(
        "streak-master",
        "Streak Master",
        "Maintain a 7-day streak",
        lambda p, total: p.streak.current >= 7,
    ),
    BadgeRule(
        "half-way",
        "Half Way Hero",
        "Complete 50% of the course",
        lambda p, total: len(p.completed_weeks) >= math.ceil(total * 0.5),
    ),
    BadgeRule(
        "point-collector",
        "Point Collector",
        "Earn 1000+ XP points",
        lambda p, total: p.total_points >= 1000,
    ),
    BadgeRule(
        "speed-demon",
        "Speed Demon",
        "Complete weeks ahead of your current week",
        lambda p, total: len(p.completed_weeks) > p.current_week + 2,
    ),
    BadgeRule(
        "perfectionist",
        "Perfectionist",
        "Complete 5 weeks",
        lambda p, total: len(p.completed_weeks) >= 5,
    ),
    BadgeRule(
        "course-champion",
        "Course Champion",
        "Complete the entire course",
        lambda p, total: len(p.completed_weeks) >= total,
    ),
    BadgeRule(
        "rocket-learner",
        "Rocket Learner",
        "Reach week 5",
        lambda p, total: p.current_week >= 5,
    ),
)


def evaluate_badges(progress: CourseProgress, total_weeks: int) -> list[Badge]:
    return [
        Badge(
            id=rule.id,
            name=rule.name,
            description=rule.description,
            earned=rule.requirement(progress, total_weeks),
        )
        for rule in BADGE_RULES
    ]
