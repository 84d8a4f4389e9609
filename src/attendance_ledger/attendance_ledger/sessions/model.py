from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionAnomaly


@dataclass(frozen=True)
class SessionDraft:
    """A session computed by reconciliation, before the store assigns an id."""

    work_date: date
    start_time: datetime
    end_time: Optional[datetime]
    total_minutes: Optional[int]
    anomaly: Optional[SessionAnomaly] = None

    @property
    def completed(self) -> bool:
        return self.end_time is not None


@dataclass(frozen=True)
class WorkSession:
    """Thực thể miền (domain): derived work session, never edited by users."""

    session_id: int
    user_id: int
    work_date: date
    start_time: datetime
    end_time: Optional[datetime]
    total_minutes: Optional[int]
    completed: bool
    anomaly: Optional[SessionAnomaly] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
