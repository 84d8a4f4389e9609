"""Rebuilds derived work sessions from a date's attendance events.

Sessions are never patched. After any event mutation the full session set of
each affected (user, date) is recomputed and replaced, inside the same store
transaction as the mutation. `SessionReconciler.mutation()` is the only way
services write events, so a write without its recompute cannot happen.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Sequence

from ..common.datetime_utils import whole_minutes
from ..common.logging import get_logger
from ..core.enums import EventKind, SessionAnomaly
from ..core.exceptions import RecordNotFoundError
from ..ledger.model import AttendanceEvent
from ..ledger.repository import LedgerStore, LedgerTransaction
from .model import SessionDraft

logger = get_logger(__name__)


def _closed(start: datetime, end: datetime, work_date: date) -> SessionDraft:
    minutes = whole_minutes(start, end)
    if minutes < 0:
        return SessionDraft(
            work_date=work_date,
            start_time=start,
            end_time=end,
            total_minutes=0,
            anomaly=SessionAnomaly.NEGATIVE_DURATION,
        )
    return SessionDraft(work_date=work_date, start_time=start, end_time=end, total_minutes=minutes)


def build_sessions(events: Iterable[AttendanceEvent]) -> list[SessionDraft]:
    """Pair a date's events into sessions.

    - Start while a session is open: the open one is kept without an end and
      flagged IMPLICIT_CLOSE, then a new session begins.
    - End with nothing open: a zero-length completed session flagged ZERO_START.
    - A trailing Start stays open (end_time None).
    """
    ordered = sorted(events, key=lambda e: (e.timestamp, e.event_id))
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.timestamp == cur.timestamp:
            logger.warning(
                "Events %s and %s share timestamp %s; ordering by id",
                prev.event_id,
                cur.event_id,
                cur.timestamp,
            )

    sessions: list[SessionDraft] = []
    open_start: Optional[AttendanceEvent] = None

    for event in ordered:
        if event.kind == EventKind.START:
            if open_start is not None:
                logger.warning("Start %s without end before start %s", open_start.event_id, event.event_id)
                sessions.append(
                    SessionDraft(
                        work_date=open_start.work_date,
                        start_time=open_start.timestamp,
                        end_time=None,
                        total_minutes=None,
                        anomaly=SessionAnomaly.IMPLICIT_CLOSE,
                    )
                )
            open_start = event
            continue

        if open_start is not None:
            sessions.append(_closed(open_start.timestamp, event.timestamp, open_start.work_date))
            open_start = None
        else:
            logger.warning("End %s has no matching start", event.event_id)
            sessions.append(
                SessionDraft(
                    work_date=event.work_date,
                    start_time=event.timestamp,
                    end_time=event.timestamp,
                    total_minutes=0,
                    anomaly=SessionAnomaly.ZERO_START,
                )
            )

    if open_start is not None:
        sessions.append(
            SessionDraft(
                work_date=open_start.work_date,
                start_time=open_start.timestamp,
                end_time=None,
                total_minutes=None,
            )
        )
    return sessions


class LedgerMutation:
    """Event writes for one user inside one transaction.

    Every write records the ledger date(s) it touched; the reconciler rebuilds
    those dates before the transaction commits.
    """

    def __init__(self, tx: LedgerTransaction, user_id: int):
        self._tx = tx
        self._user_id = int(user_id)
        self.affected_dates: set[date] = set()

    @property
    def user_id(self) -> int:
        return self._user_id

    def list_events(self, work_date: date) -> Sequence[AttendanceEvent]:
        return self._tx.list_events(self._user_id, work_date)

    def get_event(self, event_id: int) -> AttendanceEvent:
        event = self._tx.get_event(event_id)
        if event is None or event.user_id != self._user_id:
            raise RecordNotFoundError(f"Record {event_id} no longer exists")
        return event

    def insert_event(self, kind: EventKind, timestamp: datetime) -> AttendanceEvent:
        event = self._tx.insert_event(self._user_id, kind, timestamp)
        self.affected_dates.add(event.work_date)
        logger.info("Inserted %s event %s at %s for user %s", kind.value, event.event_id, timestamp, self._user_id)
        return event

    def update_event(self, event_id: int, new_timestamp: datetime) -> AttendanceEvent:
        before = self.get_event(event_id)
        after = self._tx.update_event(before.event_id, new_timestamp)
        # An edit that crosses midnight touches both dates.
        self.affected_dates.update({before.work_date, after.work_date})
        logger.info("Moved event %s from %s to %s", event_id, before.timestamp, new_timestamp)
        return after

    def delete_event(self, event_id: int) -> None:
        event = self.get_event(event_id)
        self._tx.delete_event(event.event_id)
        self.affected_dates.add(event.work_date)
        logger.info("Deleted event %s (%s at %s)", event_id, event.kind.value, event.timestamp)


class SessionReconciler:
    def __init__(self, store: LedgerStore):
        self._store = store

    @staticmethod
    def reconcile(tx: LedgerTransaction, user_id: int, work_date: date) -> list[SessionDraft]:
        events = tx.list_events(user_id, work_date)
        sessions = build_sessions(events)
        tx.replace_sessions(user_id, work_date, sessions)
        logger.info(
            "Reconciled user %s on %s: %d events -> %d sessions (%d flagged)",
            user_id,
            work_date,
            len(events),
            len(sessions),
            sum(1 for s in sessions if s.anomaly),
        )
        return sessions

    @contextmanager
    def mutation(self, user_id: int) -> Iterator[LedgerMutation]:
        """Mutate-then-reconcile unit of work.

        Usage::

            with reconciler.mutation(user_id) as m:
                m.insert_event(EventKind.START, now)
        """
        with self._store.transaction() as tx:
            tx.lock_user(user_id)
            m = LedgerMutation(tx, user_id)
            yield m
            for work_date in sorted(m.affected_dates):
                self.reconcile(tx, user_id, work_date)

    def rebuild(self, user_id: int, work_date: date) -> list[SessionDraft]:
        with self._store.transaction() as tx:
            tx.lock_user(user_id)
            return self.reconcile(tx, user_id, work_date)
