from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_DISPLAY_NAME = "Anonymous Student"


@dataclass(frozen=True, slots=True)
class StudentIdentity:
    """Gamification fields of a student account.

    ``xp`` is only ever incremented through the store's atomic increment
    (outside a transaction) or ``Transaction.increment`` (inside one);
    nothing writes it directly after creation.
    """

    student_id: str
    display_name: str = DEFAULT_DISPLAY_NAME
    xp: int = 0
    streak: int = 0
    longest_streak: int = 0
    last_streak_date: str | None = None
    last_mission_date: str | None = None

    @staticmethod
    def new(*, student_id: str, display_name: str | None = None) -> StudentIdentity:
        return StudentIdentity(
            student_id=student_id,
            display_name=display_name or DEFAULT_DISPLAY_NAME,
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "display_name": self.display_name,
            "xp": self.xp,
            "streak": self.streak,
            "longest_streak": self.longest_streak,
            "last_streak_date": self.last_streak_date,
            "last_mission_date": self.last_mission_date,
        }

    @staticmethod
    def from_doc(doc: dict[str, Any]) -> StudentIdentity:
        return StudentIdentity(
            student_id=doc["student_id"],
            display_name=doc.get("display_name") or DEFAULT_DISPLAY_NAME,
            xp=int(doc.get("xp", 0)),
            streak=int(doc.get("streak", 0)),
            longest_streak=int(doc.get("longest_streak", 0)),
            last_streak_date=doc.get("last_streak_date"),
            last_mission_date=doc.get("last_mission_date"),
        )
