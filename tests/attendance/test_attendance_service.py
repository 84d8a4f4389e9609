from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.attendance_ledger.attendance_ledger.attendance.service import AttendanceService
from src.attendance_ledger.attendance_ledger.common.datetime_utils import FixedClock
from src.attendance_ledger.attendance_ledger.core.constants import HISTORY_MAX_DATES
from src.attendance_ledger.attendance_ledger.core.enums import EventKind
from src.attendance_ledger.attendance_ledger.core.exceptions import AlreadyWorkingError, NotWorkingError
from src.attendance_ledger.attendance_ledger.ledger.memory_ledger_repository import InMemoryLedgerStore
from src.attendance_ledger.attendance_ledger.sessions.reconciler import SessionReconciler


def _service(now: datetime):
    clock = FixedClock(now)
    store = InMemoryLedgerStore(now=clock.now)
    reconciler = SessionReconciler(store)
    return clock, reconciler, AttendanceService(store, reconciler, clock)


def test_start_then_end_produces_one_session():
    clock, _, service = _service(datetime(2024, 1, 15, 9, 0))

    started = service.start_work(1)
    assert started.event.kind == EventKind.START
    assert started.event.time == "09:00"
    assert service.status(1).working is True

    clock.advance(hours=8)
    ended = service.end_work(1)
    assert ended.session.total_minutes == 480
    assert ended.session.duration == "08:00"
    assert "08:00" in ended.message

    status = service.status(1)
    assert status.working is False
    assert status.total_minutes == 480
    assert status.total_hours == "08:00"
    assert [i.kind for i in status.ledger.items] == [EventKind.START, EventKind.END]


def test_start_twice_is_rejected():
    clock, _, service = _service(datetime(2024, 1, 15, 9, 0))
    service.start_work(1)
    clock.advance(minutes=1)

    with pytest.raises(AlreadyWorkingError):
        service.start_work(1)


def test_end_without_start_is_rejected():
    clock, _, service = _service(datetime(2024, 1, 15, 9, 0))
    with pytest.raises(NotWorkingError):
        service.end_work(1)

    service.start_work(1)
    clock.advance(hours=1)
    service.end_work(1)
    clock.advance(hours=1)
    with pytest.raises(NotWorkingError):
        service.end_work(1)


def test_multiple_sessions_in_one_day():
    clock, _, service = _service(datetime(2024, 1, 15, 9, 0))
    service.start_work(1)
    clock.advance(hours=3)
    service.end_work(1)
    clock.advance(hours=1)
    service.start_work(1)
    clock.advance(hours=5)
    service.end_work(1)

    status = service.status(1)
    assert [s.total_minutes for s in status.sessions] == [180, 300]
    assert status.total_minutes == 480


def test_history_dates_newest_first_and_capped():
    today = datetime(2024, 2, 20, 12, 0)
    _, reconciler, service = _service(today)
    with reconciler.mutation(1) as m:
        for days_back in range(1, 26):
            m.insert_event(EventKind.START, today - timedelta(days=days_back))
        m.insert_event(EventKind.START, today - timedelta(days=40))

    history = service.history_dates(1)

    assert len(history.dates) == HISTORY_MAX_DATES
    assert history.dates[0] == date(2024, 2, 19)
    assert history.dates == sorted(history.dates, reverse=True)
    assert date(2024, 1, 11) not in history.dates


def test_day_view_for_past_date():
    clock, _, service = _service(datetime(2024, 1, 15, 9, 0))
    service.start_work(1)
    clock.advance(hours=2)
    service.end_work(1)
    clock.advance(days=1)

    view = service.day(1, date(2024, 1, 15))
    assert view.total_minutes == 120
    assert len(view.ledger.items) == 2
    assert service.status(1).ledger.items == []
