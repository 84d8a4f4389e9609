from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Sequence

from ..common.datetime_utils import day_bounds
from ..core.enums import EventKind, SessionAnomaly
from ..core.exceptions import RecordNotFoundError, StorageError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_transaction, fetchall, fetchone
from ..sessions.model import SessionDraft, WorkSession
from .model import AttendanceEvent
from .repository import LedgerStore, LedgerTransaction

_EVENT_COLUMNS = "event_id, user_id, kind, event_time, modified, original_time, created_at, updated_at"
_SESSION_COLUMNS = (
    "session_id, user_id, work_date, start_time, end_time, total_minutes, completed, anomaly, created_at, updated_at"
)


def _to_event(r: dict) -> AttendanceEvent:
    return AttendanceEvent(
        event_id=int(r["event_id"]),
        user_id=int(r["user_id"]),
        kind=EventKind(r["kind"]),
        timestamp=r["event_time"],
        modified=bool(r["modified"]),
        original_timestamp=r.get("original_time"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _to_session(r: dict) -> WorkSession:
    return WorkSession(
        session_id=int(r["session_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        start_time=r["start_time"],
        end_time=r.get("end_time"),
        total_minutes=int(r["total_minutes"]) if r.get("total_minutes") is not None else None,
        completed=bool(r["completed"]),
        anomaly=SessionAnomaly(r["anomaly"]) if r.get("anomaly") else None,
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLLedgerTransaction(LedgerTransaction):
    def __init__(self, cur):
        self._cur = cur

    def lock_user(self, user_id: int) -> None:
        self._cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (int(user_id),))
        fetchone(self._cur)

    def list_events(self, user_id: int, work_date: date) -> Sequence[AttendanceEvent]:
        start, end = day_bounds(work_date)
        self._cur.execute(
            f"""
            SELECT {_EVENT_COLUMNS}
            FROM attendance_events
            WHERE user_id=%s AND event_time >= %s AND event_time < %s
            ORDER BY event_time ASC, event_id ASC
            """,
            (int(user_id), start, end),
        )
        return [_to_event(r) for r in fetchall(self._cur)]

    def get_event(self, event_id: int) -> Optional[AttendanceEvent]:
        self._cur.execute(
            f"SELECT {_EVENT_COLUMNS} FROM attendance_events WHERE event_id=%s",
            (int(event_id),),
        )
        r = fetchone(self._cur)
        return _to_event(r) if r else None

    def insert_event(self, user_id: int, kind: EventKind, timestamp: datetime) -> AttendanceEvent:
        self._cur.execute(
            """
            INSERT INTO attendance_events(user_id, kind, event_time)
            VALUES(%s,%s,%s)
            """,
            (int(user_id), kind.value, timestamp),
        )
        event = self.get_event(int(self._cur.lastrowid))
        if event is None:
            raise StorageError("Inserted record could not be read back")
        return event

    def update_event(self, event_id: int, new_timestamp: datetime) -> AttendanceEvent:
        # MySQL evaluates single-table SET assignments left to right, so
        # original_time captures the pre-update event_time on the first edit.
        self._cur.execute(
            """
            UPDATE attendance_events
            SET original_time = COALESCE(original_time, event_time),
                event_time = %s,
                modified = 1
            WHERE event_id=%s
            """,
            (new_timestamp, int(event_id)),
        )
        event = self.get_event(event_id)
        if event is None:
            raise RecordNotFoundError(f"Record {event_id} no longer exists")
        return event

    def delete_event(self, event_id: int) -> None:
        self._cur.execute("DELETE FROM attendance_events WHERE event_id=%s", (int(event_id),))
        if self._cur.rowcount == 0:
            raise RecordNotFoundError(f"Record {event_id} no longer exists")

    def replace_sessions(self, user_id: int, work_date: date, sessions: Sequence[SessionDraft]) -> None:
        self._cur.execute(
            "DELETE FROM work_sessions WHERE user_id=%s AND work_date=%s",
            (int(user_id), work_date),
        )
        for s in sessions:
            self._cur.execute(
                """
                INSERT INTO work_sessions(user_id, work_date, start_time, end_time, total_minutes, completed, anomaly)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    s.work_date,
                    s.start_time,
                    s.end_time,
                    s.total_minutes,
                    1 if s.completed else 0,
                    s.anomaly.value if s.anomaly else None,
                ),
            )

    def list_sessions(self, user_id: int, start_date: date, end_date: date) -> Sequence[WorkSession]:
        self._cur.execute(
            f"""
            SELECT {_SESSION_COLUMNS}
            FROM work_sessions
            WHERE user_id=%s AND work_date BETWEEN %s AND %s
            ORDER BY work_date ASC, start_time ASC, session_id ASC
            """,
            (int(user_id), start_date, end_date),
        )
        return [_to_session(r) for r in fetchall(self._cur)]

    def list_event_dates(self, user_id: int, start_date: date, end_date: date) -> Sequence[date]:
        self._cur.execute(
            """
            SELECT DISTINCT DATE(event_time) AS event_date
            FROM attendance_events
            WHERE user_id=%s AND event_time >= %s AND event_time < %s
            ORDER BY event_date DESC
            """,
            (int(user_id), day_bounds(start_date)[0], day_bounds(end_date)[1]),
        )
        return [r["event_date"] for r in fetchall(self._cur)]


class MySQLLedgerStore(LedgerStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[MySQLLedgerTransaction]:
        with db_transaction(self._conn_factory) as (_, cur):
            yield MySQLLedgerTransaction(cur)
