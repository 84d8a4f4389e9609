from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Union

from ..common.datetime_utils import format_duration_minutes
from ..presenter.views import DayTotalView, ReportView, session_summary
from ..sessions.model import SessionDraft, WorkSession
from .model import ReportPeriod


def aggregate(sessions: Iterable[Union[WorkSession, SessionDraft]], period: ReportPeriod) -> ReportView:
    """Fold sessions into per-day subtotals and a grand total for `period`.

    Only completed sessions count towards minutes. Open sessions are listed as
    in progress; sessions carrying an anomaly are listed as flagged.
    Sessions outside the period are ignored.
    """
    in_period = sorted(
        (s for s in sessions if period.contains(s.work_date)),
        key=lambda s: (s.work_date, s.start_time),
    )

    by_day: dict = defaultdict(list)
    for s in in_period:
        by_day[s.work_date].append(s)

    days: list[DayTotalView] = []
    for work_date in sorted(by_day):
        rows = by_day[work_date]
        minutes = sum(int(s.total_minutes or 0) for s in rows if s.completed)
        days.append(
            DayTotalView(
                work_date=work_date,
                session_count=len(rows),
                total_minutes=minutes,
                total_hours=format_duration_minutes(minutes),
                in_progress=sum(1 for s in rows if not s.completed and s.anomaly is None),
                anomalies=sum(1 for s in rows if s.anomaly is not None),
            )
        )

    total = sum(d.total_minutes for d in days)
    return ReportView(
        kind=period.kind,
        start_date=period.start_date,
        end_date=period.end_date,
        days=days,
        total_minutes=total,
        total_hours=format_duration_minutes(total),
        in_progress=[session_summary(s) for s in in_period if not s.completed and s.anomaly is None],
        flagged=[session_summary(s) for s in in_period if s.anomaly is not None],
    )
