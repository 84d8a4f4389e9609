from __future__ import annotations

from datetime import date, datetime
from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import EventKind
from ..sessions.model import SessionDraft, WorkSession
from .model import AttendanceEvent


class LedgerTransaction(Protocol):
    """Operations available inside one store transaction.

    Everything done through one instance is committed or rolled back together.
    """

    def lock_user(self, user_id: int) -> None:
        """Serialize concurrent mutations for the same user until commit."""
        raise NotImplementedError

    def list_events(self, user_id: int, work_date: date) -> Sequence[AttendanceEvent]:
        """Events of one ledger date ordered by (timestamp, event_id)."""
        raise NotImplementedError

    def get_event(self, event_id: int) -> Optional[AttendanceEvent]:
        raise NotImplementedError

    def insert_event(self, user_id: int, kind: EventKind, timestamp: datetime) -> AttendanceEvent:
        raise NotImplementedError

    def update_event(self, event_id: int, new_timestamp: datetime) -> AttendanceEvent:
        """Move an event; sets `modified` and fills `original_timestamp` on first edit."""
        raise NotImplementedError

    def delete_event(self, event_id: int) -> None:
        raise NotImplementedError

    def replace_sessions(self, user_id: int, work_date: date, sessions: Sequence[SessionDraft]) -> None:
        """Replace every stored session of (user_id, work_date) with `sessions`."""
        raise NotImplementedError

    def list_sessions(self, user_id: int, start_date: date, end_date: date) -> Sequence[WorkSession]:
        """Sessions with start_date <= work_date <= end_date, ordered by date then start."""
        raise NotImplementedError

    def list_event_dates(self, user_id: int, start_date: date, end_date: date) -> Sequence[date]:
        """Distinct dates holding events, newest first."""
        raise NotImplementedError


class LedgerStore(Protocol):
    def transaction(self) -> ContextManager[LedgerTransaction]:
        raise NotImplementedError
