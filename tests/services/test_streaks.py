from __future__ import annotations

import datetime
from zoneinfo import ZoneInfo

from studyquest.services.streaks import advance_streak, days_between, today_key


def test_days_between_crosses_month_boundary() -> None:
    assert days_between("2026-02-28", "2026-03-01") == 1
    assert days_between("2026-03-01", "2026-03-01") == 0


def test_same_day_is_unchanged() -> None:
    update = advance_streak(4, 9, "2026-03-02", "2026-03-02")
    assert update.changed is False
    assert (update.current, update.longest, update.last_date) == (4, 9, "2026-03-02")


def test_next_day_increments() -> None:
    update = advance_streak(4, 4, "2026-03-01", "2026-03-02")
    assert update.changed is True
    assert update.current == 5
    assert update.longest == 5
    assert update.last_date == "2026-03-02"


def test_gap_resets_to_one_and_keeps_longest() -> None:
    update = advance_streak(6, 8, "2026-02-20", "2026-03-02")
    assert update.current == 1
    assert update.longest == 8


def test_no_history_starts_at_one() -> None:
    update = advance_streak(0, 0, None, "2026-03-02")
    assert (update.current, update.longest) == (1, 1)


def test_last_date_in_future_resets() -> None:
    assert advance_streak(3, 3, "2026-03-05", "2026-03-02").current == 1


def test_today_key_uses_configured_timezone() -> None:
    # 02:00 UTC is still the previous evening in Chicago.
    now = datetime.datetime(2026, 3, 2, 2, 0, tzinfo=datetime.UTC)
    assert today_key(ZoneInfo("UTC"), now) == "2026-03-02"
    assert today_key(ZoneInfo("America/Chicago"), now) == "2026-03-01"


def test_today_key_treats_naive_as_utc() -> None:
    now = datetime.datetime(2026, 3, 2, 23, 30)
    assert today_key(ZoneInfo("Asia/Tokyo"), now) == "2026-03-03"
