from __future__ import annotations

from dataclasses import dataclass

from studyquest.services.scoring import round_int


@dataclass(frozen=True, slots=True)
class Level:
    name: str
    min_xp: int
    max_xp: int | None  # None for the top tier


@dataclass(frozen=True, slots=True)
class LevelProgress:
    current: int
    required: int
    percentage: int


LEVEL_TIERS: tuple[Level, ...] = (
    Level("Beginner", 0, 99),
    Level("Intermediate", 100, 499),
    Level("Expert", 500, 1499),
    Level("Legend", 1500, 3999),
    Level("Master", 4000, 9999),
    Level("Champion", 10000, None),
)


def player_level(xp: int) -> Level:
    for level in reversed(LEVEL_TIERS):
        if xp >= level.min_xp:
            return level
    return LEVEL_TIERS[0]


def next_level(xp: int) -> Level | None:
    """The tier after the current one, or None at the top."""
    index = LEVEL_TIERS.index(player_level(xp))
    if index + 1 < len(LEVEL_TIERS):
        return LEVEL_TIERS[index + 1]
    return None


def progress_to_next_level(xp: int) -> LevelProgress:
    upcoming = next_level(xp)
    if upcoming is None:
        return LevelProgress(current=0, required=0, percentage=100)

    level = player_level(xp)
    current = max(xp - level.min_xp, 0)
    required = upcoming.min_xp - level.min_xp
    return LevelProgress(
        current=current,
        required=required,
        percentage=min(100, round_int(current / required * 100)),
    )
