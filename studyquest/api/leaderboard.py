from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel

from studyquest.api.dependencies import http_error, leaderboard_service
from studyquest.services.errors import ProgressionError
from studyquest.services.leaderboard import DEFAULT_LIMIT, MAX_LIMIT, LeaderboardEntry

router = APIRouter(tags=["leaderboard"])

Limit = Annotated[int, Query(ge=1, le=MAX_LIMIT)]


class LeaderboardEntryOut(BaseModel):
    rank: int
    student_id: str
    display_name: str
    xp: int
    streak: int
    level: str
    course_progress: int | None = None


def _out(entries: list[LeaderboardEntry]) -> list[LeaderboardEntryOut]:
    return [
        LeaderboardEntryOut(
            rank=e.rank,
            student_id=e.student_id,
            display_name=e.display_name,
            xp=e.xp,
            streak=e.streak,
            level=e.level,
            course_progress=e.course_progress,
        )
        for e in entries
    ]


@router.get("/v1/leaderboard", response_model=list[LeaderboardEntryOut])
async def global_leaderboard(limit: Limit = DEFAULT_LIMIT) -> list[LeaderboardEntryOut]:
    try:
        entries = await leaderboard_service.global_leaderboard(limit)
    except ProgressionError as e:
        raise http_error(e) from None
    return _out(entries)


@router.get("/v1/courses/{course_id}/leaderboard", response_model=list[LeaderboardEntryOut])
async def course_leaderboard(
    course_id: str, limit: Limit = DEFAULT_LIMIT
) -> list[LeaderboardEntryOut]:
    try:
        entries = await leaderboard_service.course_leaderboard(course_id, limit)
    except ProgressionError as e:
        raise http_error(e) from None
    return _out(entries)
