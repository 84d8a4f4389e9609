from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from ..core.constants import MAX_CORRECTION_DAYS_BACK
from ..core.exceptions import DuplicateTimestampError, FutureTimeError, TooOldError, ValidationError
from ..ledger.model import AttendanceEvent, NewEvent
from .datetime_utils import format_clock


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def validate_new_event(
    existing_events: Iterable[AttendanceEvent],
    candidate: NewEvent,
    *,
    exclude_event_id: Optional[int] = None,
) -> None:
    """Reject a candidate that collides exactly with an existing event.

    Ordering (an End before any Start, two Starts in a row) is accepted here;
    reconciliation turns it into a flagged session.
    """
    for event in existing_events:
        if exclude_event_id is not None and event.event_id == exclude_event_id:
            continue
        if event.user_id == candidate.user_id and event.timestamp == candidate.timestamp:
            raise DuplicateTimestampError(
                f"A record already exists at {format_clock(candidate.timestamp)}"
            )


def validate_correctable_date(work_date: date, today: date) -> None:
    """Only today and the previous MAX_CORRECTION_DAYS_BACK days can be corrected."""
    if work_date > today:
        raise FutureTimeError("Records cannot be placed on a future date")
    if (today - work_date).days > MAX_CORRECTION_DAYS_BACK:
        raise TooOldError(f"Records older than {MAX_CORRECTION_DAYS_BACK} days cannot be changed")


def validate_reasonable_time(timestamp: datetime, now: datetime) -> None:
    validate_correctable_date(timestamp.date(), now.date())
    if timestamp > now:
        raise FutureTimeError(f"Records cannot be placed in the future (it is {format_clock(now)} now)")
