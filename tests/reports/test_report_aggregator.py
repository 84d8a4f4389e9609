from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.attendance_ledger.attendance_ledger.common.datetime_utils import FixedClock
from src.attendance_ledger.attendance_ledger.core.enums import EventKind, ReportPeriodKind, SessionAnomaly
from src.attendance_ledger.attendance_ledger.core.exceptions import InvalidFormatError
from src.attendance_ledger.attendance_ledger.ledger.memory_ledger_repository import InMemoryLedgerStore
from src.attendance_ledger.attendance_ledger.reports.aggregator import aggregate
from src.attendance_ledger.attendance_ledger.reports.model import ReportPeriod
from src.attendance_ledger.attendance_ledger.reports.service import ReportService
from src.attendance_ledger.attendance_ledger.sessions.model import WorkSession
from src.attendance_ledger.attendance_ledger.sessions.reconciler import SessionReconciler


def _session(sid: int, day: date, start: time, end: time | None, anomaly=None) -> WorkSession:
    start_dt = datetime.combine(day, start)
    end_dt = datetime.combine(day, end) if end else None
    minutes = int((end_dt - start_dt).total_seconds() // 60) if end_dt else None
    return WorkSession(
        session_id=sid,
        user_id=1,
        work_date=day,
        start_time=start_dt,
        end_time=end_dt,
        total_minutes=minutes,
        completed=end_dt is not None,
        anomaly=anomaly,
    )


def test_weekly_report_groups_by_day_and_excludes_open_sessions():
    sessions = [
        _session(5, date(2024, 1, 17), time(9), time(17, 30)),
        _session(1, date(2024, 1, 15), time(9), time(12)),
        _session(2, date(2024, 1, 15), time(13), time(18)),
        _session(3, date(2024, 1, 16), time(9), None),
        _session(4, date(2024, 1, 14), time(9), time(17)),  # previous week (Sunday)
    ]
    report = aggregate(sessions, ReportPeriod.containing(ReportPeriodKind.WEEKLY, date(2024, 1, 17)))

    assert report.start_date == date(2024, 1, 15)
    assert report.end_date == date(2024, 1, 21)
    assert [d.work_date for d in report.days] == [date(2024, 1, 15), date(2024, 1, 16), date(2024, 1, 17)]
    assert [d.total_minutes for d in report.days] == [480, 0, 510]
    assert report.days[1].in_progress == 1
    assert report.total_minutes == 990
    assert report.total_hours == "16:30"
    assert len(report.in_progress) == 1
    assert report.in_progress[0].start == "09:00"


def test_flagged_sessions_are_listed_separately():
    day = date(2024, 1, 15)
    sessions = [
        _session(1, day, time(8), None, anomaly=SessionAnomaly.IMPLICIT_CLOSE),
        _session(2, day, time(13), time(18)),
        _session(3, day, time(19), time(19), anomaly=SessionAnomaly.ZERO_START),
    ]
    report = aggregate(sessions, ReportPeriod.containing(ReportPeriodKind.DAILY, day))

    assert report.total_minutes == 300
    assert report.days[0].anomalies == 2
    assert report.days[0].in_progress == 0
    assert report.in_progress == []
    assert [f.anomaly for f in report.flagged] == [SessionAnomaly.IMPLICIT_CLOSE, SessionAnomaly.ZERO_START]


def test_monthly_period_covers_calendar_month():
    period = ReportPeriod.containing(ReportPeriodKind.MONTHLY, date(2024, 2, 15))
    sessions = [
        _session(1, date(2024, 1, 31), time(9), time(10)),
        _session(2, date(2024, 2, 1), time(9), time(10)),
        _session(3, date(2024, 2, 29), time(9), time(11)),
        _session(4, date(2024, 3, 1), time(9), time(10)),
    ]
    report = aggregate(sessions, period)

    assert (report.start_date, report.end_date) == (date(2024, 2, 1), date(2024, 2, 29))
    assert report.total_minutes == 180


def test_empty_period():
    report = aggregate([], ReportPeriod.containing(ReportPeriodKind.DAILY, date(2024, 1, 15)))
    assert report.days == []
    assert report.total_minutes == 0
    assert report.total_hours == "00:00"


def test_report_service_reads_reconciled_sessions():
    clock = FixedClock(datetime(2024, 1, 17, 20, 0))
    store = InMemoryLedgerStore(now=clock.now)
    reconciler = SessionReconciler(store)
    with reconciler.mutation(1) as m:
        m.insert_event(EventKind.START, datetime(2024, 1, 15, 9, 0))
        m.insert_event(EventKind.END, datetime(2024, 1, 15, 17, 0))
        m.insert_event(EventKind.START, datetime(2024, 1, 17, 9, 0))
        m.insert_event(EventKind.END, datetime(2024, 1, 17, 12, 0))

    service = ReportService(store, clock)

    assert service.daily(1).total_minutes == 180
    assert service.weekly(1).total_minutes == 660
    assert service.monthly(1).total_minutes == 660
    assert service.daily(1, day=date(2024, 1, 15)).total_minutes == 480
    assert service.daily(2).total_minutes == 0

    with pytest.raises(InvalidFormatError):
        service.report(1, "yearly")
