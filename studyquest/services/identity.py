from __future__ import annotations

import logging

from studyquest.db.store import DocumentStore, user_key
from studyquest.models.identity import StudentIdentity
from studyquest.services.cache import LEADERBOARD_CACHE_PATTERN, CacheService
from studyquest.services.errors import AlreadyExistsError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STUDENT_NOT_FOUND = "student-not-found"


def require_id(value: str, name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"invalid-{name.replace('_', '-')}", f"{name} must be non-empty")
    if "/" in value:
        raise ValidationError(
            f"invalid-{name.replace('_', '-')}", f"{name} must not contain '/'"
        )
    return value


class IdentityService:
    """Student accounts' gamification fields (XP, streak)."""

    def __init__(self, store: DocumentStore, cache: CacheService) -> None:
        self._store = store
        self._cache = cache

    async def register(
        self, student_id: str, display_name: str | None = None
    ) -> StudentIdentity:
        student_id = require_id(student_id, "student_id")
        identity = StudentIdentity.new(
            student_id=student_id,
            display_name=(display_name or "").strip() or None,
        )
        if not await self._store.conditional_create(user_key(student_id), identity.to_doc()):
            logger.warning("Rejected duplicate student registration student_id=%s", student_id)
            raise AlreadyExistsError("student-exists", f"student {student_id} already exists")
        await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
        logger.info(
            "Registered student",
            extra={"student_id": student_id},
        )
        return identity

    async def find(self, student_id: str) -> StudentIdentity | None:
        doc = await self._store.get(user_key(student_id))
        return StudentIdentity.from_doc(doc) if doc is not None else None

    async def get(self, student_id: str) -> StudentIdentity:
        identity = await self.find(student_id)
        if identity is None:
            raise NotFoundError(STUDENT_NOT_FOUND, f"student {student_id} not found")
        return identity

    async def list_all(self) -> list[StudentIdentity]:
        return [StudentIdentity.from_doc(doc) for _, doc in await self._store.list_prefix("users/")]

    async def increment_xp(self, student_id: str, amount: int) -> int:
        """Add XP without reading the whole record.  Returns the new total."""
        if amount < 0:
            raise ValidationError("invalid-xp", "XP is never decremented")
        try:
            total = await self._store.atomic_increment(user_key(student_id), "xp", amount)
        except KeyError:
            raise NotFoundError(STUDENT_NOT_FOUND, f"student {student_id} not found") from None
        await self._cache.delete_pattern(LEADERBOARD_CACHE_PATTERN)
        return total
