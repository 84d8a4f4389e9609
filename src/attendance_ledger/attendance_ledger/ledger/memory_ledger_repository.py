from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Iterator, Optional, Sequence

from ..core.enums import EventKind
from ..core.exceptions import RecordNotFoundError
from ..sessions.model import SessionDraft, WorkSession
from .model import AttendanceEvent
from .repository import LedgerStore, LedgerTransaction


@dataclass
class _LedgerState:
    events: dict[int, AttendanceEvent] = field(default_factory=dict)
    sessions: dict[int, WorkSession] = field(default_factory=dict)
    next_event_id: int = 1
    next_session_id: int = 1


class InMemoryLedgerTransaction(LedgerTransaction):
    """Works on a private copy of the state; the store swaps it in on commit."""

    def __init__(self, state: _LedgerState, now: Callable[[], datetime]):
        self._state = state
        self._now = now

    def lock_user(self, user_id: int) -> None:
        # The store lock already serializes whole transactions.
        return None

    def list_events(self, user_id: int, work_date: date) -> Sequence[AttendanceEvent]:
        items = [e for e in self._state.events.values() if e.user_id == user_id and e.work_date == work_date]
        items.sort(key=lambda e: (e.timestamp, e.event_id))
        return items

    def get_event(self, event_id: int) -> Optional[AttendanceEvent]:
        return self._state.events.get(int(event_id))

    def insert_event(self, user_id: int, kind: EventKind, timestamp: datetime) -> AttendanceEvent:
        now = self._now()
        event = AttendanceEvent(
            event_id=self._state.next_event_id,
            user_id=int(user_id),
            kind=kind,
            timestamp=timestamp,
            created_at=now,
            updated_at=now,
        )
        self._state.events[event.event_id] = event
        self._state.next_event_id += 1
        return event

    def update_event(self, event_id: int, new_timestamp: datetime) -> AttendanceEvent:
        current = self._state.events.get(int(event_id))
        if current is None:
            raise RecordNotFoundError(f"Record {event_id} no longer exists")
        updated = replace(
            current,
            timestamp=new_timestamp,
            modified=True,
            original_timestamp=current.original_timestamp or current.timestamp,
            updated_at=self._now(),
        )
        self._state.events[updated.event_id] = updated
        return updated

    def delete_event(self, event_id: int) -> None:
        if self._state.events.pop(int(event_id), None) is None:
            raise RecordNotFoundError(f"Record {event_id} no longer exists")

    def replace_sessions(self, user_id: int, work_date: date, sessions: Sequence[SessionDraft]) -> None:
        stale = [
            sid for sid, s in self._state.sessions.items() if s.user_id == user_id and s.work_date == work_date
        ]
        for sid in stale:
            del self._state.sessions[sid]

        now = self._now()
        for draft in sessions:
            session = WorkSession(
                session_id=self._state.next_session_id,
                user_id=int(user_id),
                work_date=draft.work_date,
                start_time=draft.start_time,
                end_time=draft.end_time,
                total_minutes=draft.total_minutes,
                completed=draft.completed,
                anomaly=draft.anomaly,
                created_at=now,
                updated_at=now,
            )
            self._state.sessions[session.session_id] = session
            self._state.next_session_id += 1

    def list_sessions(self, user_id: int, start_date: date, end_date: date) -> Sequence[WorkSession]:
        items = [
            s
            for s in self._state.sessions.values()
            if s.user_id == user_id and start_date <= s.work_date <= end_date
        ]
        items.sort(key=lambda s: (s.work_date, s.start_time, s.session_id))
        return items

    def list_event_dates(self, user_id: int, start_date: date, end_date: date) -> Sequence[date]:
        dates = {
            e.work_date
            for e in self._state.events.values()
            if e.user_id == user_id and start_date <= e.work_date <= end_date
        }
        return sorted(dates, reverse=True)


class InMemoryLedgerStore(LedgerStore):
    """Process-local ledger used by the `memory` backend and by tests."""

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self._state = _LedgerState()
        self._lock = threading.RLock()
        self._now = now or datetime.now

    @contextmanager
    def transaction(self) -> Iterator[InMemoryLedgerTransaction]:
        with self._lock:
            working = copy.deepcopy(self._state)
            yield InMemoryLedgerTransaction(working, self._now)
            self._state = working
