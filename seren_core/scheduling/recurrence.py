"""Next-occurrence computation for daily, weekly and monthly cadences.

All functions are pure: they read only the ``now`` they are given and always
return an instant strictly after it, with seconds and microseconds zeroed and
``now``'s tzinfo preserved.

Weekdays are numbered 0=Sunday..6=Saturday. Monthly cadences whose day does
not exist in a month (e.g. the 31st in April) are clamped to that month's last
day rather than skipping the month.
"""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta

from seren_core.errors import InvalidCadence

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(value: str) -> tuple[int, int]:
    """Parse ``"HH:MM"`` into ``(hour, minute)``."""
    match = _CLOCK_PATTERN.match(str(value or "").strip())
    if not match:
        raise InvalidCadence(f"expected HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    _validate_time(hour, minute)
    return hour, minute


def sunday_weekday(moment: datetime) -> int:
    return moment.isoweekday() % 7


def next_daily(hour: int, minute: int, now: datetime) -> datetime:
    _validate_time(hour, minute)
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def next_weekly(day_of_week: int, hour: int, minute: int, now: datetime) -> datetime:
    _validate_int("day_of_week", day_of_week, 0, 6)
    _validate_time(hour, minute)
    days_ahead = (day_of_week - sunday_weekday(now)) % 7
    candidate = (now + timedelta(days=days_ahead)).replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


def next_monthly(day_of_month: int, hour: int, minute: int, now: datetime) -> datetime:
    _validate_int("day_of_month", day_of_month, 1, 31)
    _validate_time(hour, minute)
    candidate = _month_slot(now, now.year, now.month, day_of_month, hour, minute)
    if candidate > now:
        return candidate
    year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
    return _month_slot(now, year, month, day_of_month, hour, minute)


def clamp_day(year: int, month: int, day_of_month: int) -> int:
    return min(day_of_month, calendar.monthrange(year, month)[1])


def _month_slot(now: datetime, year: int, month: int, day_of_month: int, hour: int, minute: int) -> datetime:
    return now.replace(
        year=year,
        month=month,
        day=clamp_day(year, month, day_of_month),
        hour=hour,
        minute=minute,
        second=0,
        microsecond=0,
    )


def _validate_time(hour: int, minute: int) -> None:
    _validate_int("hour", hour, 0, 23)
    _validate_int("minute", minute, 0, 59)


def _validate_int(name: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidCadence(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise InvalidCadence(f"{name} must be within {low}..{high}, got {value}")
