from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import Clock, format_clock, format_duration_minutes
from ..common.logging import get_logger
from ..common.retry import read_with_retry
from ..common.validators import validate_new_event
from ..core.constants import HISTORY_DAYS, HISTORY_MAX_DATES
from ..core.enums import EventKind
from ..core.exceptions import AlreadyWorkingError, NotWorkingError
from ..ledger.model import AttendanceEvent, NewEvent
from ..ledger.repository import LedgerStore
from ..presenter.presenter import NullPresenter, Presenter
from ..presenter.views import (
    CommandResult,
    DayStatusView,
    HistoryView,
    ledger_item,
    ledger_view,
    session_summary,
)
from ..sessions.model import WorkSession
from ..sessions.reconciler import SessionReconciler

logger = get_logger(__name__)


def _is_working(events: Sequence[AttendanceEvent]) -> bool:
    """True when the date's latest event is a Start."""
    if not events:
        return False
    latest = max(events, key=lambda e: (e.timestamp, e.event_id))
    return latest.kind == EventKind.START


class AttendanceService:
    """Start/end commands and read-only day views for one user."""

    def __init__(
        self,
        store: LedgerStore,
        reconciler: SessionReconciler,
        clock: Clock,
        *,
        presenter: Optional[Presenter] = None,
    ):
        self._store = store
        self._reconciler = reconciler
        self._clock = clock
        self._presenter = presenter or NullPresenter()

    def _emit(self, view):
        self._presenter.present(view)
        return view

    def _read_day(self, user_id: int, work_date: date) -> tuple[Sequence[AttendanceEvent], Sequence[WorkSession]]:
        def read():
            with self._store.transaction() as tx:
                return tx.list_events(user_id, work_date), tx.list_sessions(user_id, work_date, work_date)

        return read_with_retry(read)

    def start_work(self, user_id: int) -> CommandResult:
        now = self._clock.now()
        with self._reconciler.mutation(user_id) as m:
            events = m.list_events(now.date())
            if _is_working(events):
                raise AlreadyWorkingError("You are already working. End the current session first.")
            validate_new_event(events, NewEvent(user_id=int(user_id), kind=EventKind.START, timestamp=now))
            event = m.insert_event(EventKind.START, now)

        logger.info("User %s started work at %s", user_id, format_clock(now))
        return self._emit(CommandResult(message=f"Work started at {format_clock(now)}", event=ledger_item(event)))

    def end_work(self, user_id: int) -> CommandResult:
        now = self._clock.now()
        with self._reconciler.mutation(user_id) as m:
            events = m.list_events(now.date())
            if not _is_working(events):
                raise NotWorkingError("You are not working. Start a session first.")
            validate_new_event(events, NewEvent(user_id=int(user_id), kind=EventKind.END, timestamp=now))
            event = m.insert_event(EventKind.END, now)

        _, sessions = self._read_day(int(user_id), now.date())
        finished = next((s for s in sessions if s.end_time == event.timestamp), None)
        message = f"Work ended at {format_clock(now)}"
        if finished is not None and finished.total_minutes is not None:
            message += f" ({format_duration_minutes(finished.total_minutes)} worked)"

        logger.info("User %s ended work at %s", user_id, format_clock(now))
        return self._emit(
            CommandResult(
                message=message,
                event=ledger_item(event),
                session=session_summary(finished) if finished is not None else None,
            )
        )

    def day(self, user_id: int, work_date: date) -> DayStatusView:
        events, sessions = self._read_day(int(user_id), work_date)
        total = sum(int(s.total_minutes or 0) for s in sessions if s.completed)
        return self._emit(
            DayStatusView(
                ledger=ledger_view(int(user_id), work_date, events),
                sessions=[session_summary(s) for s in sessions],
                total_minutes=total,
                total_hours=format_duration_minutes(total),
                working=_is_working(events),
            )
        )

    def status(self, user_id: int) -> DayStatusView:
        return self.day(user_id, self._clock.now().date())

    def history_dates(self, user_id: int) -> HistoryView:
        today = self._clock.now().date()
        start = today - timedelta(days=HISTORY_DAYS)

        def read():
            with self._store.transaction() as tx:
                return tx.list_event_dates(int(user_id), start, today)

        dates = list(read_with_retry(read))[:HISTORY_MAX_DATES]
        return self._emit(HistoryView(user_id=int(user_id), dates=dates))
