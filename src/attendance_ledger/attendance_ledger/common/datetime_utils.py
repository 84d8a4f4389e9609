from __future__ import annotations

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol

from ..core.constants import DEFAULT_LEDGER_UTC_OFFSET_HOURS, WEEK_START_WEEKDAY
from ..core.exceptions import InvalidFormatError, OutOfRangeError

_CLOCK_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant as naive wall-clock time in the ledger zone."""
        raise NotImplementedError


class SystemClock:
    """Real clock converted into the ledger's fixed-offset zone."""

    def __init__(self, utc_offset_hours: int = DEFAULT_LEDGER_UTC_OFFSET_HOURS):
        self._tz = timezone(timedelta(hours=int(utc_offset_hours)))

    def now(self) -> datetime:
        return datetime.now(self._tz).replace(tzinfo=None, microsecond=0)


@dataclass
class FixedClock:
    """Clock that returns a settable instant. Used by tests and scripts."""

    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


def parse_clock_time(text: str) -> time:
    """Parse `H:MM` / `HH:MM` (24-hour) into a time of day."""
    match = _CLOCK_TIME_RE.match((text or "").strip())
    if not match:
        raise InvalidFormatError("Invalid time format, use HH:MM (e.g. 09:30)")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise OutOfRangeError(f"Time out of range: {text.strip()} (00:00-23:59)")
    return time(hour=hour, minute=minute)


def combine(day: date, time_of_day: time) -> datetime:
    return datetime.combine(day, time_of_day)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) range covering one ledger date."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def week_bounds(day: date) -> tuple[date, date]:
    start = day - timedelta(days=(day.weekday() - WEEK_START_WEEKDAY) % 7)
    return start, start + timedelta(days=6)


def month_bounds(day: date) -> tuple[date, date]:
    last = monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def whole_minutes(start: datetime, end: datetime) -> int:
    """Floor of (end - start) in minutes. May be negative."""
    return int((end - start).total_seconds() // 60)


def format_clock(ts: datetime) -> str:
    return ts.strftime("%H:%M")


def format_duration_minutes(minutes: int) -> str:
    minutes = int(minutes)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()
