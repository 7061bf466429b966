"""Clock sources for the scheduler and the notification log."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo


def safe_timezone_name(value: str | None, fallback: str = "UTC") -> str:
    candidate = (value or fallback).strip() or fallback
    try:
        ZoneInfo(candidate)
        return candidate
    except Exception:  # noqa: BLE001
        return fallback


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in a fixed IANA timezone."""

    def __init__(self, timezone_name: str = "UTC") -> None:
        self.timezone_name = safe_timezone_name(timezone_name)
        self._tz = ZoneInfo(self.timezone_name)

    def now(self) -> datetime:
        return datetime.now(self._tz)


class ManualClock:
    """Clock that only moves when told to. Used by tests and dry runs."""

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = value

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._now = self._now + step
            return self._now
