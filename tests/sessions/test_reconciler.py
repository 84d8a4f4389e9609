from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, time
from itertools import permutations

import pytest

from src.attendance_ledger.attendance_ledger.core.enums import EventKind, SessionAnomaly
from src.attendance_ledger.attendance_ledger.core.exceptions import RecordNotFoundError, StorageError
from src.attendance_ledger.attendance_ledger.ledger.memory_ledger_repository import InMemoryLedgerStore
from src.attendance_ledger.attendance_ledger.ledger.model import AttendanceEvent
from src.attendance_ledger.attendance_ledger.sessions.reconciler import SessionReconciler, build_sessions

DAY = date(2024, 1, 15)
START, END = EventKind.START, EventKind.END


def ev(event_id: int, kind: EventKind, hh: int, mm: int = 0, day: date = DAY) -> AttendanceEvent:
    return AttendanceEvent(event_id=event_id, user_id=1, kind=kind, timestamp=datetime.combine(day, time(hh, mm)))


def _stored_sessions(store, user_id=1, day=DAY):
    with store.transaction() as tx:
        return tx.list_sessions(user_id, day, day)


class FailingStore:
    """Wraps the in-memory store; replace_sessions raises while `fail` is set."""

    def __init__(self, inner):
        self._inner = inner
        self.fail = False

    @contextmanager
    def transaction(self):
        with self._inner.transaction() as tx:
            yield _FailingTransaction(tx, self)


class _FailingTransaction:
    def __init__(self, tx, owner):
        self._tx = tx
        self._owner = owner

    def __getattr__(self, name):
        return getattr(self._tx, name)

    def replace_sessions(self, *args, **kwargs):
        if self._owner.fail:
            raise StorageError("connection lost")
        return self._tx.replace_sessions(*args, **kwargs)


def test_alternating_events_pair_into_closed_sessions():
    sessions = build_sessions([ev(1, START, 9), ev(2, END, 12), ev(3, START, 13), ev(4, END, 18)])

    assert [s.total_minutes for s in sessions] == [180, 300]
    assert all(s.completed and s.anomaly is None for s in sessions)
    assert sum(s.total_minutes for s in sessions) == 480


def test_result_does_not_depend_on_insertion_order():
    events = [ev(1, START, 9), ev(2, END, 12), ev(3, START, 13), ev(4, END, 18), ev(5, START, 19)]
    expected = build_sessions(events)

    for order in permutations(events):
        assert build_sessions(list(order)) == expected


def test_trailing_start_stays_open():
    sessions = build_sessions([ev(1, START, 9), ev(2, END, 12), ev(3, START, 13)])

    open_sessions = [s for s in sessions if not s.completed]
    assert len(open_sessions) == 1
    assert open_sessions[0].end_time is None
    assert open_sessions[0].total_minutes is None
    assert open_sessions[0].anomaly is None


def test_leading_end_becomes_zero_length_session():
    sessions = build_sessions([ev(1, END, 8), ev(2, START, 9), ev(3, END, 17)])

    first = sessions[0]
    assert first.completed
    assert first.total_minutes == 0
    assert first.start_time == first.end_time
    assert first.anomaly == SessionAnomaly.ZERO_START
    assert sessions[1].total_minutes == 480


def test_consecutive_starts_leave_first_session_without_end():
    sessions = build_sessions([ev(1, START, 8, 30), ev(2, START, 13), ev(3, END, 18)])

    assert len(sessions) == 2
    assert sessions[0].end_time is None
    assert sessions[0].anomaly == SessionAnomaly.IMPLICIT_CLOSE
    assert sessions[1].total_minutes == 300


def test_same_timestamp_orders_by_event_id():
    sessions = build_sessions([ev(2, START, 9), ev(1, END, 9)])

    assert sessions[0].anomaly == SessionAnomaly.ZERO_START
    assert not sessions[1].completed


def test_empty_day_has_no_sessions():
    assert build_sessions([]) == []


def test_mutation_reconciles_affected_date():
    store = InMemoryLedgerStore()
    reconciler = SessionReconciler(store)

    with reconciler.mutation(1) as m:
        m.insert_event(START, datetime(2024, 1, 15, 9, 0))
        m.insert_event(END, datetime(2024, 1, 15, 17, 0))

    sessions = _stored_sessions(store)
    assert [s.total_minutes for s in sessions] == [480]

    with reconciler.mutation(1) as m:
        for event in m.list_events(DAY):
            m.delete_event(event.event_id)
    assert _stored_sessions(store) == []


def test_failed_reconciliation_rolls_back_the_event_write():
    store = FailingStore(InMemoryLedgerStore())
    reconciler = SessionReconciler(store)

    store.fail = True
    with pytest.raises(StorageError):
        with reconciler.mutation(1) as m:
            m.insert_event(START, datetime(2024, 1, 15, 9, 0))

    with store.transaction() as tx:
        assert tx.list_events(1, DAY) == []


def test_edit_across_midnight_rebuilds_both_dates():
    store = InMemoryLedgerStore()
    reconciler = SessionReconciler(store)
    with reconciler.mutation(1) as m:
        m.insert_event(START, datetime(2024, 1, 15, 9, 0))
        end = m.insert_event(END, datetime(2024, 1, 15, 17, 0))

    with reconciler.mutation(1) as m:
        m.update_event(end.event_id, datetime(2024, 1, 16, 1, 0))

    first_day = _stored_sessions(store)
    assert len(first_day) == 1 and not first_day[0].completed

    next_day = _stored_sessions(store, day=date(2024, 1, 16))
    assert len(next_day) == 1
    assert next_day[0].anomaly == SessionAnomaly.ZERO_START


def test_mutation_cannot_touch_another_users_event():
    store = InMemoryLedgerStore()
    reconciler = SessionReconciler(store)
    with reconciler.mutation(1) as m:
        event = m.insert_event(START, datetime(2024, 1, 15, 9, 0))

    with pytest.raises(RecordNotFoundError):
        with reconciler.mutation(2) as m:
            m.delete_event(event.event_id)


def test_rebuild_replaces_stale_sessions():
    store = InMemoryLedgerStore()
    reconciler = SessionReconciler(store)
    with reconciler.mutation(1) as m:
        m.insert_event(START, datetime(2024, 1, 15, 9, 0))

    with store.transaction() as tx:
        tx.replace_sessions(1, DAY, [])

    rebuilt = reconciler.rebuild(1, DAY)
    assert len(rebuilt) == 1
    assert len(_stored_sessions(store)) == 1
