from __future__ import annotations

from datetime import date, datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from auradesk.settings import get_settings


def local_today() -> date:
    tz_name = get_settings().app_timezone
    try:
        return datetime.now(ZoneInfo(tz_name)).date()
    except (KeyError, ValueError):
        return date.today()


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def compute_streak(dates: Iterable, today: date | None = None) -> int:
    """Count consecutive completed days ending today or yesterday.

    ``dates`` must be sorted newest first. The first entry may be today or
    yesterday; each later entry must fall exactly one day before the previous
    counted one, otherwise the scan stops.
    """
    current = today or local_today()
    streak = 0
    for value in dates:
        completed = _as_date(value)
        diff = (current - completed).days
        if diff not in (0, 1):
            break
        streak += 1
        current = completed
    return streak


def completion_percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # Round half up on exact integers.
    return (200 * done + total) // (2 * total)


def day_of_year(day: date) -> int:
    return day.timetuple().tm_yday


def quote_index(day_number: int, quote_count: int) -> int | None:
    if quote_count <= 0:
        return None
    return (day_number % quote_count) + 1
