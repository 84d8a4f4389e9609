from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import EventKind


@dataclass(frozen=True)
class AttendanceEvent:
    """Thực thể miền (domain): one recorded Start or End instant.

    `original_timestamp` is set on the first edit and never overwritten, so it
    is None exactly when `modified` is False.
    """

    event_id: int
    user_id: int
    kind: EventKind
    timestamp: datetime
    modified: bool = False
    original_timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def work_date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class NewEvent:
    """Candidate event checked before it is written to the ledger."""

    user_id: int
    kind: EventKind
    timestamp: datetime
