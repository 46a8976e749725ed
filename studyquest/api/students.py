"""Student registration and profile."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel

from studyquest.api.dependencies import (
    content_service,
    http_error,
    identity_service,
)
from studyquest.services.errors import ProgressionError
from studyquest.services.levels import next_level, player_level, progress_to_next_level

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/students", tags=["students"])


class StudentCreateIn(BaseModel):
    student_id: str
    display_name: str | None = None


class StudentOut(BaseModel):
    student_id: str
    display_name: str
    xp: int
    streak: int


class LevelProgressOut(BaseModel):
    current: int
    required: int
    percentage: int


class ProfileOut(BaseModel):
    student_id: str
    display_name: str
    xp: int
    streak: int
    longest_streak: int
    last_streak_date: str | None
    level: str
    next_level: str | None
    level_progress: LevelProgressOut
    courses: list[str]


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
async def register_student(payload: StudentCreateIn) -> StudentOut:
    try:
        identity = await identity_service.register(payload.student_id, payload.display_name)
    except ProgressionError as e:
        raise http_error(e) from None
    return StudentOut(
        student_id=identity.student_id,
        display_name=identity.display_name,
        xp=identity.xp,
        streak=identity.streak,
    )


@router.get("/{student_id}/profile", response_model=ProfileOut)
async def get_profile(student_id: str) -> ProfileOut:
    try:
        identity = await identity_service.get(student_id)
        courses = await content_service.list_student_courses(student_id)
    except ProgressionError as e:
        raise http_error(e) from None

    upcoming = next_level(identity.xp)
    progress = progress_to_next_level(identity.xp)
    return ProfileOut(
        student_id=identity.student_id,
        display_name=identity.display_name,
        xp=identity.xp,
        streak=identity.streak,
        longest_streak=identity.longest_streak,
        last_streak_date=identity.last_streak_date,
        level=player_level(identity.xp).name,
        next_level=upcoming.name if upcoming is not None else None,
        level_progress=LevelProgressOut(
            current=progress.current,
            required=progress.required,
            percentage=progress.percentage,
        ),
        courses=[c.id for c in courses],
    )
