from __future__ import annotations

import datetime
from dataclasses import dataclass
from zoneinfo import ZoneInfo


def today_key(tz: ZoneInfo, now: datetime.datetime) -> str:
    """Calendar date of ``now`` in ``tz`` as a dateKey (YYYY-MM-DD)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.UTC)
    return now.astimezone(tz).date().isoformat()


def parse_date_key(date_key: str) -> datetime.date:
    return datetime.date.fromisoformat(date_key)


def days_between(earlier: str, later: str) -> int:
    return (parse_date_key(later) - parse_date_key(earlier)).days


@dataclass(frozen=True, slots=True)
class StreakUpdate:
    current: int
    longest: int
    last_date: str
    changed: bool


def advance_streak(
    current: int, longest: int, last_date: str | None, today: str
) -> StreakUpdate:
    """Apply the once-per-day streak rule.

    Same day: unchanged.  Next day: +1.  Any gap, no history, or a last
    date in the future (clock skew): reset to 1.
    """
    if last_date is not None:
        delta = days_between(last_date, today)
        if delta == 0:
            return StreakUpdate(current, longest, last_date, changed=False)
        if delta == 1:
            new_current = current + 1
        else:
            new_current = 1
    else:
        new_current = 1

    return StreakUpdate(
        current=new_current,
        longest=max(longest, new_current),
        last_date=today,
        changed=True,
    )
