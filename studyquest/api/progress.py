"""Enrollment, week map, and quiz endpoints for one student in one course.

Quiz submission sequence:
  Client -> POST /v1/students/{sid}/courses/{cid}/weeks/{n}/quiz
  -> stored submission exists? 200 with it (no XP)
  -> grade, store submission, complete week, credit XP (one transaction)
  -> invalidate leaderboards
  -> 201 Created
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from studyquest.api.dependencies import content_service, http_error, progression_engine
from studyquest.models.progress import CourseProgress
from studyquest.models.quiz import AnswerIn, QuizSubmission, QuizTiming
from studyquest.services.badges import evaluate_badges
from studyquest.services.errors import ProgressionError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/students/{student_id}/courses/{course_id}", tags=["progress"])


class WeekProgressOut(BaseModel):
    video_watched: bool
    assignment_completed: bool
    assignment_score: float | None
    assignment_submitted_at: str | None
    daily_challenges_completed: list[int]
    total_daily_points: int


class StreakOut(BaseModel):
    current: int
    longest: int
    last_activity_date: str | None


class ProgressOut(BaseModel):
    student_id: str
    course_id: str
    current_week: int
    completed_weeks: list[int]
    overall_progress: int
    weekly_progress: dict[int, WeekProgressOut]
    streak: StreakOut
    total_points: int
    active: bool
    enrolled_at: str | None
    last_updated: str | None


class WeekStatusOut(BaseModel):
    week_number: int
    topic: str
    published: bool
    unlocked: bool
    completed: bool
    is_current: bool
    submitted: bool
    locked_reason: str | None


class WeekAccessOut(BaseModel):
    week_number: int
    allowed: bool
    reason: str | None


class AnswerPayload(BaseModel):
    question_id: str
    selected: int | str | None = None
    timed_out: bool = False


class QuizSubmitIn(BaseModel):
    answers: list[AnswerPayload] = Field(default_factory=list)
    started_at: str | None = None
    completed_at: str | None = None
    time_taken_seconds: int | None = None


class AnswerRecordOut(BaseModel):
    question_id: str
    selected: int | str | None
    is_correct: bool
    timed_out: bool
    points_awarded: float


class QuizSubmissionOut(BaseModel):
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
    answers: list[AnswerRecordOut]
    submitted_at: str


class BadgeOut(BaseModel):
    id: str
    name: str
    description: str
    earned: bool


def progress_out(progress: CourseProgress) -> ProgressOut:
    doc = progress.to_doc()
    doc["weekly_progress"] = {int(n): wp for n, wp in doc["weekly_progress"].items()}
    return ProgressOut(**doc)


def _submission_out(submission: QuizSubmission) -> QuizSubmissionOut:
    return QuizSubmissionOut(**submission.to_doc())


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


@router.post("/enroll", response_model=ProgressOut, status_code=status.HTTP_201_CREATED)
async def enroll(student_id: str, course_id: str) -> ProgressOut:
    try:
        progress, created = await progression_engine.enroll(student_id, course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    if not created:
        logger.warning(
            "Duplicate enrollment rejected",
            extra={"student_id": student_id, "course_id": course_id},
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"reason": "already-enrolled", "message": "already enrolled"},
        )
    return progress_out(progress)


@router.delete("/enroll", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll(student_id: str, course_id: str) -> Response:
    try:
        await progression_engine.unenroll(student_id, course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("/progress", response_model=ProgressOut)
async def get_progress(student_id: str, course_id: str) -> ProgressOut:
    try:
        progress = await progression_engine.get_progress(student_id, course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return progress_out(progress)


@router.get("/weeks", response_model=list[WeekStatusOut])
async def get_week_map(student_id: str, course_id: str) -> list[WeekStatusOut]:
    try:
        statuses = await progression_engine.week_map(student_id, course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return [
        WeekStatusOut(
            week_number=s.week_number,
            topic=s.topic,
            published=s.published,
            unlocked=s.unlocked,
            completed=s.completed,
            is_current=s.is_current,
            submitted=s.submitted,
            locked_reason=s.locked_reason,
        )
        for s in statuses
    ]


@router.get("/weeks/{week_number}/access", response_model=WeekAccessOut)
async def get_week_access(student_id: str, course_id: str, week_number: int) -> WeekAccessOut:
    try:
        access = await progression_engine.get_week_access(student_id, course_id, week_number)
    except ProgressionError as e:
        raise http_error(e) from None
    return WeekAccessOut(week_number=week_number, allowed=access.allowed, reason=access.reason)


@router.get("/badges", response_model=list[BadgeOut])
async def get_badges(student_id: str, course_id: str) -> list[BadgeOut]:
    try:
        course = await content_service.get_course(course_id)
        progress = await progression_engine.get_progress(student_id, course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return [
        BadgeOut(id=b.id, name=b.name, description=b.description, earned=b.earned)
        for b in evaluate_badges(progress, course.duration_weeks)
    ]


# ---------------------------------------------------------------------------
# Week activity
# ---------------------------------------------------------------------------


@router.post("/weeks/{week_number}/video-watched", response_model=ProgressOut)
async def mark_video_watched(student_id: str, course_id: str, week_number: int) -> ProgressOut:
    try:
        progress = await progression_engine.record_video_watched(
            student_id, course_id, week_number
        )
    except ProgressionError as e:
        raise http_error(e) from None
    return progress_out(progress)


@router.post(
    "/weeks/{week_number}/quiz",
    response_model=QuizSubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_quiz(
    student_id: str,
    course_id: str,
    week_number: int,
    payload: QuizSubmitIn,
    response: Response,
) -> QuizSubmissionOut:
    answers = [
        AnswerIn(question_id=a.question_id, selected=a.selected, timed_out=a.timed_out)
        for a in payload.answers
    ]
    timing = None
    if payload.started_at and payload.completed_at:
        timing = QuizTiming(
            started_at=payload.started_at,
            completed_at=payload.completed_at,
            time_taken_seconds=payload.time_taken_seconds or 0,
        )
    elif payload.started_at or payload.completed_at or payload.time_taken_seconds is not None:
        raise http_error(
            ValidationError(
                "invalid-timing", "started_at and completed_at must be sent together"
            )
        )
    try:
        submission, created = await progression_engine.submit_quiz(
            student_id, course_id, week_number, answers, timing
        )
    except ProgressionError as e:
        raise http_error(e) from None
    if not created:
        response.status_code = status.HTTP_200_OK
    return _submission_out(submission)


@router.get("/weeks/{week_number}/quiz", response_model=QuizSubmissionOut)
async def get_quiz_submission(
    student_id: str, course_id: str, week_number: int
) -> QuizSubmissionOut:
    try:
        await content_service.get_course(course_id)
        await progression_engine.get_progress(student_id, course_id)
        submission = await progression_engine.get_submission(student_id, course_id, week_number)
    except ProgressionError as e:
        raise http_error(e) from None
    if submission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"reason": "not-submitted", "message": "no submission for this week"},
        )
    return _submission_out(submission)
