"""Course and weekly content endpoints (instructor side).

The engine never writes content; these routes are how it gets there.
The roster routes read enrolled students' progress for the instructor.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from studyquest.api.dependencies import content_service, http_error, progression_engine
from studyquest.models.course import Course, Question, WeekContent
from studyquest.models.progress import RosterEntry
from studyquest.services.badges import evaluate_badges
from studyquest.services.errors import ProgressionError

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseCreateIn(BaseModel):
    title: str
    subject: str = ""
    duration_weeks: int | None = None
    created_by: str | None = None
    id: str | None = None


class CourseOut(BaseModel):
    id: str
    title: str
    subject: str
    duration_weeks: int
    enrolled_students: list[str]
    student_count: int
    created_by: str | None


class QuestionIn(BaseModel):
    id: str
    prompt: str
    type: str = "mcq"  # mcq|short_answer|essay
    options: list[str] | None = None
    correct_answer: int | str | None = None
    points: float | None = None
    explanation: str | None = None


class WeekContentIn(BaseModel):
    topic: str = ""
    description: str = ""
    video_uploaded: bool = False
    study_content_created: bool = False
    assignment_created: bool = False
    questions: list[QuestionIn] = Field(default_factory=list)
    total_points: float | None = None
    time_limit: int | None = None


class WeekContentOut(WeekContentIn):
    course_id: str
    week_number: int
    published: bool


def course_out(course: Course) -> CourseOut:
    return CourseOut(
        id=course.id,
        title=course.title,
        subject=course.subject,
        duration_weeks=course.duration_weeks,
        enrolled_students=list(course.enrolled_students),
        student_count=course.student_count,
        created_by=course.created_by,
    )


def _week_out(week: WeekContent) -> WeekContentOut:
    return WeekContentOut(
        course_id=week.course_id,
        week_number=week.week_number,
        published=week.published,
        **{k: v for k, v in week.to_doc().items() if k not in ("course_id", "week_number")},
    )


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(payload: CourseCreateIn) -> CourseOut:
    try:
        course = await content_service.create_course(
            title=payload.title,
            subject=payload.subject,
            duration_weeks=payload.duration_weeks,
            created_by=payload.created_by,
            course_id=payload.id,
        )
    except ProgressionError as e:
        raise http_error(e) from None
    return course_out(course)


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(course_id: str) -> CourseOut:
    try:
        course = await content_service.get_course(course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return course_out(course)


@router.put("/{course_id}/weeks/{week_number}", response_model=WeekContentOut)
async def put_week_content(
    course_id: str, week_number: int, payload: WeekContentIn
) -> WeekContentOut:
    content = WeekContent(
        course_id=course_id,
        week_number=week_number,
        topic=payload.topic,
        description=payload.description,
        video_uploaded=payload.video_uploaded,
        study_content_created=payload.study_content_created,
        assignment_created=payload.assignment_created,
        questions=tuple(
            Question(
                id=q.id,
                prompt=q.prompt,
                type=q.type,
                options=tuple(q.options) if q.options is not None else None,
                correct_answer=q.correct_answer,
                points=q.points,
                explanation=q.explanation,
            )
            for q in payload.questions
        ),
        total_points=payload.total_points,
        time_limit=payload.time_limit,
    )
    try:
        saved = await content_service.upsert_week(content)
    except ProgressionError as e:
        raise http_error(e) from None
    return _week_out(saved)


@router.get("/{course_id}/weeks/{week_number}", response_model=WeekContentOut)
async def get_week_content(course_id: str, week_number: int) -> WeekContentOut:
    try:
        await content_service.get_course(course_id)
        week = await content_service.get_week(course_id, week_number)
    except ProgressionError as e:
        raise http_error(e) from None
    if week is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"reason": "week-not-found", "message": f"week {week_number} has no content"},
        )
    return _week_out(week)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


class RosterEntryOut(BaseModel):
    student_id: str
    display_name: str
    enrolled_at: str | None
    last_activity: str | None
    current_week: int
    completed_weeks: list[int]
    overall_progress: int
    total_points: int
    current_streak: int
    weekly_scores: dict[int, float]


class StudentDetailOut(RosterEntryOut):
    badges: list[str]


def _roster_out(entry: RosterEntry) -> dict:
    return {
        "student_id": entry.student_id,
        "display_name": entry.display_name,
        "enrolled_at": entry.enrolled_at,
        "last_activity": entry.last_updated,
        "current_week": entry.current_week,
        "completed_weeks": list(entry.completed_weeks),
        "overall_progress": entry.overall_progress,
        "total_points": entry.total_points,
        "current_streak": entry.current_streak,
        "weekly_scores": entry.weekly_scores,
    }


@router.get("/{course_id}/students", response_model=list[RosterEntryOut])
async def list_course_students(course_id: str) -> list[RosterEntryOut]:
    try:
        roster = await progression_engine.course_roster(course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return [RosterEntryOut(**_roster_out(entry)) for entry in roster]


@router.get("/{course_id}/students/{student_id}", response_model=StudentDetailOut)
async def get_course_student(course_id: str, student_id: str) -> StudentDetailOut:
    try:
        course = await content_service.get_course(course_id)
        entry = await progression_engine.roster_entry(course_id, student_id)
        progress = await progression_engine.get_progress(student_id, course_id)
    except ProgressionError as e:
        raise http_error(e) from None
    earned = [b.id for b in evaluate_badges(progress, course.duration_weeks) if b.earned]
    return StudentDetailOut(**_roster_out(entry), badges=earned)
