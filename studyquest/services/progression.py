"""Progression engine: enrollment, week unlocking, quizzes, XP and streaks.

Every operation that changes state runs as a single
``DocumentStore.transactional_update`` over the exact documents it
touches.  Idempotency (one submission per week, one award per daily
slot, one credit per completed week) is decided inside that
transaction, so concurrent duplicate calls cannot both win and a
failure part-way leaves nothing behind.

XP inside a transaction goes through ``Transaction.increment`` and is
never written as a whole-record overwrite.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from zoneinfo import ZoneInfo

from studyquest.core.metrics import DAILY_TASKS, QUIZ_SUBMISSIONS, WEEKS_COMPLETED, XP_AWARDED
from studyquest.db.store import (
    DocumentStore,
    Transaction,
    course_key,
    mission_key,
    progress_key,
    submission_key,
    user_key,
)
from studyquest.models.course import Course, QuestionAnswer
from studyquest.models.identity import DEFAULT_DISPLAY_NAME, StudentIdentity
from studyquest.models.mission import (
    TASK_TYPES,
    DailyMissionRecord,
    DailyMissionStatus,
    DailyQuestion,
)
from studyquest.models.progress import CourseProgress, RosterEntry, StreakState, WeekStatus
from studyquest.models.quiz import AnswerIn, QuizSubmission, QuizTiming
from studyquest.services.cache import LEADERBOARD_CACHE_PATTERN, CacheService
from studyquest.services.content import ContentService
from studyquest.services.daily_question import select_daily_question
from studyquest.services.errors import (
    CONTENT_NOT_READY,
    COURSE_NOT_FOUND,
    NOT_ENROLLED,
    PROGRESS_GATED,
    AccessDeniedError,
    NotFoundError,
    QuizUnavailableError,
    ValidationError,
)
from studyquest.services.identity import require_id
from studyquest.services.scoring import is_answer_correct, round_int, score_quiz
from studyquest.services.streaks import advance_streak, today_key

logger = logging.getLogger(__name__)

LOGIN_XP = 10
QUESTION_XP = 10
QUESTION_CORRECT_BONUS_XP = 10
FOCUS_XP = 15


Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


# ---------------------------------------------------------------------------
# Week access rules (pure)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WeekAccess:
    allowed: bool
    reason: str | None = None


def week_access(progress: CourseProgress, week_number: int, week_published: bool) -> WeekAccess:
    """Completed weeks stay open forever; otherwise reached and published."""
    if week_number in progress.completed_weeks:
        return WeekAccess(allowed=True)
    if week_number > progress.current_week:
        return WeekAccess(allowed=False, reason=PROGRESS_GATED)
    if not week_published:
        return WeekAccess(allowed=False, reason=CONTENT_NOT_READY)
    return WeekAccess(allowed=True)


def can_access_week(progress: CourseProgress, week_number: int, week_published: bool) -> bool:
    return week_access(progress, week_number, week_published).allowed


def _validate_week(course: Course, week_number: int) -> int:
    if isinstance(week_number, bool) or not isinstance(week_number, int):
        raise ValidationError("invalid-week", "week_number must be an integer")
    if not 1 <= week_number <= course.duration_weeks:
        raise ValidationError(
            "invalid-week",
            f"week_number must be between 1 and {course.duration_weeks}",
        )
    return week_number


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ProgressionEngine:
    def __init__(
        self,
        store: DocumentStore,
        content: ContentService,
        cache: CacheService,
        *,
        tz: ZoneInfo | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._content = content
        self._cache = cache
        self._tz = tz or ZoneInfo("UTC")
        self._clock = clock or _utcnow

    # -- time ---------------------------------------------------------------

    def _now(self) -> datetime.datetime:
        return self._clock()

    def today(self) -> str:
        return today_key(self._tz, self._now())

    # -- enrollment ---------------------------------------------------------

    async def enroll(self, student_id: str, course_id: str) -> tuple[CourseProgress, bool]:
        """Enroll a student.

        Returns the progress record and whether this call made the
        enrollment effective.  A previously removed student gets their old
        record back, reactivated with progress intact.
        """
        student_id = require_id(student_id, "student_id")
        course_id = require_id(course_id, "course_id")
        await self._content.get_course(course_id)
        now = self._now().isoformat()

        u_key = user_key(student_id)
        c_key = course_key(course_id)
        p_key = progress_key(student_id, course_id)

        def mutate(txn: Transaction) -> tuple[CourseProgress, bool]:
            course_doc = txn.get(c_key)
            if course_doc is None:
                raise NotFoundError(COURSE_NOT_FOUND, f"course {course_id} not found")
            _ensure_identity(txn, student_id)

            enrolled = list(course_doc.get("enrolled_students", ()))
            if student_id not in enrolled:
                enrolled.append(student_id)
                course_doc["enrolled_students"] = enrolled
                course_doc["student_count"] = len(enrolled)
                txn.set(c_key, course_doc)

            existing = txn.get(p_key)
            if existing is None:
                progress = CourseProgress.new(
                    student_id=student_id, course_id=course_id, enrolled_at=now
                )
                txn.set(p_key, progress.to_doc())
                return progress, True

            progress = CourseProgress.from_doc(existing)
            if progress.active:
                return progress, False

            progress = replace(progress, active=True, last_updated=now)
            txn.set(p_key, progress.to_doc())
            return progress, True

        progress, created = await self._store.transactional_update([u_key, c_key, p_key], mutate)
        log_extra = {"student_id": student_id, "course_id": course_id}
        if created:
            # Course membership (and possibly the identity) changed.
            await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
            logger.info(
                "Enrolled student current_week=%d completed=%d",
                progress.current_week,
                len(progress.completed_weeks),
                extra=log_extra,
            )
        else:
            logger.debug("Enrollment already active", extra=log_extra)
        return progress, created

    async def unenroll(self, student_id: str, course_id: str) -> CourseProgress:
        """Remove a student from a course.  Their progress is kept, inactive."""
        c_key = course_key(course_id)
        p_key = progress_key(student_id, course_id)
        now = self._now().isoformat()

        def mutate(txn: Transaction) -> CourseProgress:
            existing = txn.get(p_key)
            if existing is None or not existing.get("active", True):
                raise NotFoundError(
                    NOT_ENROLLED, f"student {student_id} is not enrolled in {course_id}"
                )
            course_doc = txn.get(c_key)
            if course_doc is not None:
                enrolled = [s for s in course_doc.get("enrolled_students", ()) if s != student_id]
                course_doc["enrolled_students"] = enrolled
                course_doc["student_count"] = len(enrolled)
                txn.set(c_key, course_doc)
            progress = replace(CourseProgress.from_doc(existing), active=False, last_updated=now)
            txn.set(p_key, progress.to_doc())
            return progress

        progress = await self._store.transactional_update([c_key, p_key], mutate)
        await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
        logger.info(
            "Unenrolled student",
            extra={"student_id": student_id, "course_id": course_id},
        )
        return progress

    # -- reads --------------------------------------------------------------

    async def find_progress(self, student_id: str, course_id: str) -> CourseProgress | None:
        doc = await self._store.get(progress_key(student_id, course_id))
        return CourseProgress.from_doc(doc) if doc is not None else None

    async def get_progress(self, student_id: str, course_id: str) -> CourseProgress:
        progress = await self.find_progress(student_id, course_id)
        if progress is None or not progress.active:
            raise NotFoundError(
                NOT_ENROLLED, f"student {student_id} is not enrolled in {course_id}"
            )
        return progress

    async def get_submission(
        self, student_id: str, course_id: str, week_number: int
    ) -> QuizSubmission | None:
        doc = await self._store.get(submission_key(student_id, course_id, week_number))
        return QuizSubmission.from_doc(doc) if doc is not None else None

    async def get_week_access(
        self, student_id: str, course_id: str, week_number: int
    ) -> WeekAccess:
        course = await self._content.get_course(course_id)
        _validate_week(course, week_number)
        progress = await self.get_progress(student_id, course_id)
        week = await self._content.get_week(course_id, week_number)
        return week_access(progress, week_number, week is not None and week.published)

    async def check_week_access(self, student_id: str, course_id: str, week_number: int) -> None:
        """Raise AccessDeniedError, with the reason, unless the week is open."""
        access = await self.get_week_access(student_id, course_id, week_number)
        if not access.allowed:
            logger.warning(
                "Week access denied reason=%s",
                access.reason,
                extra={"student_id": student_id, "course_id": course_id, "week_number": week_number},
            )
            raise AccessDeniedError(access.reason, f"week {week_number} is locked")

    async def week_map(self, student_id: str, course_id: str) -> list[WeekStatus]:
        course = await self._content.get_course(course_id)
        progress = await self.get_progress(student_id, course_id)
        weeks = {w.week_number: w for w in await self._content.list_weeks(course_id)}
        submitted = {
            int(doc["week_number"])
            for _, doc in await self._store.list_prefix(
                f"submissions/{student_id}/{course_id}/"
            )
        }

        statuses: list[WeekStatus] = []
        for n in range(1, course.duration_weeks + 1):
            week = weeks.get(n)
            published = week is not None and week.published
            access = week_access(progress, n, published)
            statuses.append(
                WeekStatus(
                    week_number=n,
                    topic=week.topic if week is not None else "",
                    published=published,
                    unlocked=access.allowed,
                    completed=n in progress.completed_weeks,
                    is_current=n == progress.current_week,
                    submitted=n in submitted,
                    locked_reason=access.reason,
                )
            )
        return statuses

    async def course_roster(self, course_id: str) -> list[RosterEntry]:
        """Active students of a course, in enrollment order."""
        course = await self._content.get_course(course_id)
        roster: list[RosterEntry] = []
        for student_id in course.enrolled_students:
            progress = await self.find_progress(student_id, course_id)
            if progress is None or not progress.active:
                logger.warning(
                    "Enrolled student has no active progress",
                    extra={"student_id": student_id, "course_id": course_id},
                )
                continue
            roster.append(await self._roster_entry(progress))
        return roster

    async def roster_entry(self, course_id: str, student_id: str) -> RosterEntry:
        await self._content.get_course(course_id)
        progress = await self.get_progress(student_id, course_id)
        return await self._roster_entry(progress)

    async def _roster_entry(self, progress: CourseProgress) -> RosterEntry:
        doc = await self._store.get(user_key(progress.student_id))
        name = StudentIdentity.from_doc(doc).display_name if doc else DEFAULT_DISPLAY_NAME
        return RosterEntry.build(progress, name)

    # -- week activity ------------------------------------------------------

    async def record_video_watched(
        self, student_id: str, course_id: str, week_number: int
    ) -> CourseProgress:
        await self.check_week_access(student_id, course_id, week_number)
        p_key = progress_key(student_id, course_id)
        now = self._now().isoformat()

        def mutate(txn: Transaction) -> CourseProgress:
            progress = _load_active_progress(txn, p_key, student_id, course_id)
            week = progress.week(week_number)
            if week.video_watched:
                return progress
            progress = replace(
                progress.with_week(week_number, replace(week, video_watched=True)),
                last_updated=now,
            )
            txn.set(p_key, progress.to_doc())
            return progress

        progress = await self._store.transactional_update([p_key], mutate)
        logger.info(
            "Video watched",
            extra={"student_id": student_id, "course_id": course_id, "week_number": week_number},
        )
        return progress

    async def submit_quiz(
        self,
        student_id: str,
        course_id: str,
        week_number: int,
        answers: Sequence[AnswerIn],
        timing: QuizTiming | None = None,
    ) -> tuple[QuizSubmission, bool]:
        """Grade and store a week's quiz, then complete the week.

        Idempotent by (student, course, week): once a submission exists it
        is returned unchanged, whatever the new payload says, and no XP is
        awarded.  Returns ``(submission, created)``.
        """
        log_extra = {"student_id": student_id, "course_id": course_id, "week_number": week_number}
        course = await self._content.get_course(course_id)
        _validate_week(course, week_number)
        if timing is not None and timing.time_taken_seconds < 0:
            raise ValidationError("invalid-timing", "time_taken_seconds must be >= 0")

        existing = await self.get_submission(student_id, course_id, week_number)
        if existing is not None:
            QUIZ_SUBMISSIONS.labels(outcome="replayed").inc()
            logger.debug("Quiz already submitted, returning stored result", extra=log_extra)
            return existing, False

        progress = await self.get_progress(student_id, course_id)
        week = await self._content.get_week(course_id, week_number)
        if week is None or not week.has_quiz:
            logger.warning("Quiz submission with no question bank", extra=log_extra)
            raise QuizUnavailableError(f"week {week_number} has no quiz")

        access = week_access(progress, week_number, week.published)
        if not access.allowed:
            logger.warning("Quiz submission denied reason=%s", access.reason, extra=log_extra)
            raise AccessDeniedError(access.reason, f"week {week_number} is locked")

        score = score_quiz(week.questions, answers, week.total_points)

        now = self._now()
        now_iso = now.isoformat()
        today = today_key(self._tz, now)
        if timing is None:
            timing = QuizTiming(started_at=now_iso, completed_at=now_iso, time_taken_seconds=0)

        s_key = submission_key(student_id, course_id, week_number)
        p_key = progress_key(student_id, course_id)
        u_key = user_key(student_id)

        def mutate(txn: Transaction) -> tuple[QuizSubmission, bool, bool]:
            stored = txn.get(s_key)
            if stored is not None:
                # Lost a race with a concurrent submission.
                return QuizSubmission.from_doc(stored), False, False

            current = _load_active_progress(txn, p_key, student_id, course_id)
            submission = QuizSubmission(
                student_id=student_id,
                course_id=course_id,
                week_number=week_number,
                total_questions=score.total_questions,
                correct_answers=score.correct_answers,
                total_points=score.total_points,
                points_earned=score.points_earned,
                xp_awarded=score.xp_awarded,
                score_percentage=score.score_percentage,
                time_taken_seconds=timing.time_taken_seconds,
                started_at=timing.started_at,
                completed_at=timing.completed_at,
                answers=score.answers,
                submitted_at=now_iso,
            )
            txn.set(s_key, submission.to_doc())

            week_progress = replace(
                current.week(week_number),
                assignment_completed=True,
                assignment_score=score.score_percentage,
                assignment_submitted_at=now_iso,
            )
            current = current.with_week(week_number, week_progress)
            current, completed = _apply_week_completion(
                txn,
                current,
                total_weeks=course.duration_weeks,
                week_number=week_number,
                xp_award=score.xp_awarded,
                today=today,
                now_iso=now_iso,
            )
            txn.set(p_key, current.to_doc())
            return submission, True, completed

        submission, created, completed = await self._store.transactional_update(
            [s_key, p_key, u_key], mutate
        )
        if not created:
            QUIZ_SUBMISSIONS.labels(outcome="replayed").inc()
            logger.debug("Quiz submitted concurrently, returning stored result", extra=log_extra)
            return submission, False

        QUIZ_SUBMISSIONS.labels(outcome="created").inc()
        if completed:
            WEEKS_COMPLETED.inc()
            XP_AWARDED.labels(source="quiz").inc(submission.xp_awarded)
            await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
        logger.info(
            "Quiz submitted score=%d%% correct=%d/%d points=%.2f xp=%d",
            submission.score_percentage,
            submission.correct_answers,
            submission.total_questions,
            submission.points_earned,
            submission.xp_awarded,
            extra=log_extra,
        )
        return submission, True

    async def complete_week(
        self, student_id: str, course_id: str, week_number: int, xp_award: int
    ) -> CourseProgress:
        """Mark a week complete and credit ``xp_award``.  No-op if already complete."""
        log_extra = {"student_id": student_id, "course_id": course_id, "week_number": week_number}
        course = await self._content.get_course(course_id)
        _validate_week(course, week_number)
        if xp_award < 0:
            raise ValidationError("invalid-xp", "xp_award must be >= 0")

        now = self._now()
        today = today_key(self._tz, now)
        p_key = progress_key(student_id, course_id)

        def mutate(txn: Transaction) -> tuple[CourseProgress, bool]:
            current = _load_active_progress(txn, p_key, student_id, course_id)
            current, completed = _apply_week_completion(
                txn,
                current,
                total_weeks=course.duration_weeks,
                week_number=week_number,
                xp_award=xp_award,
                today=today,
                now_iso=now.isoformat(),
            )
            if completed:
                txn.set(p_key, current.to_doc())
            return current, completed

        progress, completed = await self._store.transactional_update(
            [p_key, user_key(student_id)], mutate
        )
        if not completed:
            logger.debug("Week already completed", extra=log_extra)
            return progress

        WEEKS_COMPLETED.inc()
        if xp_award:
            XP_AWARDED.labels(source="quiz").inc(xp_award)
        await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
        logger.info(
            "Week completed current_week=%d overall=%d%%",
            progress.current_week,
            progress.overall_progress,
            extra=log_extra,
        )
        return progress

    # -- daily missions -----------------------------------------------------

    async def select_daily_question(self, student_id: str, date_key: str) -> DailyQuestion | None:
        enrolled = [
            (course, await self._content.list_weeks(course.id))
            for course in await self._content.list_student_courses(student_id)
        ]
        return select_daily_question(student_id, date_key, enrolled)

    async def get_daily_missions(self, student_id: str) -> DailyMissionStatus:
        student_id = require_id(student_id, "student_id")
        now = self._now()
        today = today_key(self._tz, now)
        doc = await self._store.get(mission_key(student_id, today))
        if doc is not None:
            record = DailyMissionRecord.from_doc(doc)
        else:
            record = DailyMissionRecord(
                student_id=student_id, date_key=today, created_at=now.isoformat()
            )
        return DailyMissionStatus.from_record(
            record, await self.select_daily_question(student_id, today)
        )

    async def complete_daily_task(
        self,
        student_id: str,
        task_type: str,
        *,
        answer: QuestionAnswer | None = None,
        reflection: str | None = None,
    ) -> DailyMissionStatus:
        """Award one daily mission slot.  Each slot pays out once per day."""
        student_id = require_id(student_id, "student_id")
        log_extra = {"student_id": student_id, "task_type": task_type}
        if task_type not in TASK_TYPES:
            raise ValidationError("invalid-task", f"task_type must be one of {'|'.join(TASK_TYPES)}")
        if task_type == "question" and answer is None:
            raise ValidationError("missing-answer", "question task requires an answer")
        if task_type == "focus":
            reflection = (reflection or "").strip()
            if not reflection:
                raise ValidationError("missing-reflection", "focus task requires a reflection")

        now = self._now()
        now_iso = now.isoformat()
        today = today_key(self._tz, now)
        daily_question = await self.select_daily_question(student_id, today)
        if task_type == "question" and daily_question is None:
            logger.warning("Daily question requested but none available", extra=log_extra)
            raise QuizUnavailableError("no daily question available")

        m_key = mission_key(student_id, today)
        u_key = user_key(student_id)

        def mutate(txn: Transaction) -> tuple[DailyMissionRecord, bool]:
            doc = txn.get(m_key)
            if doc is not None:
                record = DailyMissionRecord.from_doc(doc)
            else:
                record = DailyMissionRecord(
                    student_id=student_id, date_key=today, created_at=now_iso
                )
            if record.slot_xp(task_type) > 0:
                return record, False

            _ensure_identity(txn, student_id)
            if task_type == "login":
                xp = LOGIN_XP
                record = replace(record, login_xp_awarded=xp, login_completed_at=now_iso)
                _advance_identity_streak(txn, student_id, today)
            elif task_type == "question":
                correct = is_answer_correct(daily_question, answer)
                xp = QUESTION_XP + (QUESTION_CORRECT_BONUS_XP if correct else 0)
                record = replace(
                    record,
                    question_xp_awarded=xp,
                    question_completed_at=now_iso,
                    question_answer=answer,
                    question_correct=correct,
                )
            else:
                xp = FOCUS_XP
                record = replace(
                    record,
                    focus_xp_awarded=xp,
                    focus_completed_at=now_iso,
                    focus_reflection=reflection,
                )

            txn.set(m_key, record.to_doc())
            txn.increment(u_key, "xp", xp)
            identity = txn.get(u_key)
            identity["last_mission_date"] = today
            txn.set(u_key, identity)
            return record, True

        record, awarded = await self._store.transactional_update([m_key, u_key], mutate)
        if awarded:
            xp = record.slot_xp(task_type)
            DAILY_TASKS.labels(task=task_type, outcome="awarded").inc()
            XP_AWARDED.labels(source=task_type).inc(xp)
            await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
            logger.info("Daily task awarded xp=%d", xp, extra=log_extra)
        else:
            DAILY_TASKS.labels(task=task_type, outcome="replayed").inc()
            logger.debug("Daily task already awarded today", extra=log_extra)
        return DailyMissionStatus.from_record(record, daily_question)


# ---------------------------------------------------------------------------
# Transaction helpers
# ---------------------------------------------------------------------------


def _load_active_progress(
    txn: Transaction, key: str, student_id: str, course_id: str
) -> CourseProgress:
    doc = txn.get(key)
    if doc is None or not doc.get("active", True):
        raise NotFoundError(NOT_ENROLLED, f"student {student_id} is not enrolled in {course_id}")
    return CourseProgress.from_doc(doc)


def _ensure_identity(txn: Transaction, student_id: str) -> None:
    txn.create(user_key(student_id), StudentIdentity.new(student_id=student_id).to_doc())


def _advance_identity_streak(txn: Transaction, student_id: str, today: str) -> None:
    """The account-level streak: at most one change per calendar day."""
    key = user_key(student_id)
    doc = txn.get(key)
    if doc is None:
        return
    identity = StudentIdentity.from_doc(doc)
    update = advance_streak(
        identity.streak, identity.longest_streak, identity.last_streak_date, today
    )
    if not update.changed:
        return
    doc["streak"] = update.current
    doc["longest_streak"] = update.longest
    doc["last_streak_date"] = update.last_date
    txn.set(key, doc)


def _apply_week_completion(
    txn: Transaction,
    progress: CourseProgress,
    *,
    total_weeks: int,
    week_number: int,
    xp_award: int,
    today: str,
    now_iso: str,
) -> tuple[CourseProgress, bool]:
    """Credit a week inside ``txn``.  Returns the new progress and whether it changed.

    The caller writes the progress document; XP and the account streak are
    written here.
    """
    if week_number in progress.completed_weeks:
        return progress, False

    completed = progress.completed_weeks | {week_number}
    streak = advance_streak(
        progress.streak.current,
        progress.streak.longest,
        progress.streak.last_activity_date,
        today,
    )
    progress = replace(
        progress,
        completed_weeks=completed,
        # One week per completion, capped at the course length; never backwards.
        current_week=max(progress.current_week, min(week_number + 1, total_weeks)),
        overall_progress=min(100, round_int(len(completed) / total_weeks * 100)),
        total_points=progress.total_points + xp_award,
        streak=StreakState(streak.current, streak.longest, streak.last_date),
        last_updated=now_iso,
    )

    _ensure_identity(txn, progress.student_id)
    if xp_award:
        txn.increment(user_key(progress.student_id), "xp", xp_award)
    _advance_identity_streak(txn, progress.student_id, today)
    return progress, True
