"""Daily missions: login, question of the day, focus reflection."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from studyquest.api.dependencies import http_error, progression_engine
from studyquest.models.mission import DailyMissionStatus, DailyQuestion, TaskState
from studyquest.services.errors import ProgressionError

router = APIRouter(prefix="/v1/students/{student_id}/missions", tags=["missions"])


class TaskIn(BaseModel):
    answer: int | str | None = None
    reflection: str | None = None


class TaskStateOut(BaseModel):
    completed: bool
    xp_awarded: int
    completed_at: str | None


class DailyQuestionOut(BaseModel):
    course_id: str
    course_title: str
    week_number: int
    question_id: str
    prompt: str
    type: str
    options: list[str] | None


class MissionStatusOut(BaseModel):
    date_key: str
    total_xp_awarded: int
    login: TaskStateOut
    question: TaskStateOut
    focus: TaskStateOut
    daily_question: DailyQuestionOut | None
    question_attempted: bool
    question_answered_correct: bool
    question_answer: int | str | None
    focus_response: str | None


def _task_out(state: TaskState) -> TaskStateOut:
    return TaskStateOut(
        completed=state.completed,
        xp_awarded=state.xp_awarded,
        completed_at=state.completed_at,
    )


def _question_out(question: DailyQuestion | None) -> DailyQuestionOut | None:
    # The correct answer stays server-side.
    if question is None:
        return None
    return DailyQuestionOut(
        course_id=question.course_id,
        course_title=question.course_title,
        week_number=question.week_number,
        question_id=question.question_id,
        prompt=question.prompt,
        type=question.type,
        options=list(question.options) if question.options is not None else None,
    )


def _status_out(mission: DailyMissionStatus) -> MissionStatusOut:
    return MissionStatusOut(
        date_key=mission.date_key,
        total_xp_awarded=mission.total_xp_awarded,
        login=_task_out(mission.login),
        question=_task_out(mission.question),
        focus=_task_out(mission.focus),
        daily_question=_question_out(mission.daily_question),
        question_attempted=mission.question_attempted,
        question_answered_correct=mission.question_answered_correct,
        question_answer=mission.question_answer,
        focus_response=mission.focus_response,
    )


@router.get("", response_model=MissionStatusOut)
async def get_missions(student_id: str) -> MissionStatusOut:
    try:
        mission = await progression_engine.get_daily_missions(student_id)
    except ProgressionError as e:
        raise http_error(e) from None
    return _status_out(mission)


@router.post("/{task_type}", response_model=MissionStatusOut)
async def complete_task(
    student_id: str, task_type: str, payload: TaskIn | None = None
) -> MissionStatusOut:
    payload = payload or TaskIn()
    try:
        mission = await progression_engine.complete_daily_task(
            student_id,
            task_type,
            answer=payload.answer,
            reflection=payload.reflection,
        )
    except ProgressionError as e:
        raise http_error(e) from None
    return _status_out(mission)
