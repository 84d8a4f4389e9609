from __future__ import annotations

from datetime import date, datetime

import mysql.connector
import pytest

from src.attendance_ledger.attendance_ledger.core.exceptions import RecordNotFoundError, StorageError
from src.attendance_ledger.attendance_ledger.database.mysql_base import db_transaction
from src.attendance_ledger.attendance_ledger.ledger.mysql_ledger_repository import MySQLLedgerStore


class FakeCursor:
    def __init__(self, rows=None, rowcount=1):
        self.executed = []
        self._rows = list(rows or [])
        self.rowcount = rowcount
        self.lastrowid = None
        self.closed = False

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def start_transaction(self):
        pass

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, conn=None, error=None):
        self._conn = conn
        self._error = error

    def connect(self):
        if self._error:
            raise self._error
        return self._conn


def test_commit_on_success():
    conn = FakeConnection(FakeCursor())
    with db_transaction(FakeFactory(conn)) as (_, cur):
        cur.execute("SELECT 1")

    assert conn.committed and not conn.rolled_back and conn.closed


def test_driver_error_rolls_back_as_storage_error():
    conn = FakeConnection(FakeCursor())
    with pytest.raises(StorageError):
        with db_transaction(FakeFactory(conn)):
            raise mysql.connector.Error("lock wait timeout")

    assert conn.rolled_back and not conn.committed and conn.closed


def test_domain_error_rolls_back_and_propagates():
    cursor = FakeCursor(rowcount=0)
    conn = FakeConnection(cursor)
    store = MySQLLedgerStore(FakeFactory(conn))

    with pytest.raises(RecordNotFoundError):
        with store.transaction() as tx:
            tx.delete_event(42)

    assert conn.rolled_back and not conn.committed
    assert cursor.executed[0] == ("DELETE FROM attendance_events WHERE event_id=%s", (42,))


def test_connect_failure_is_storage_error():
    with pytest.raises(StorageError):
        with db_transaction(FakeFactory(error=mysql.connector.Error("refused"))):
            pass


def test_list_events_uses_half_open_day_range():
    cursor = FakeCursor()
    store = MySQLLedgerStore(FakeFactory(FakeConnection(cursor)))

    with store.transaction() as tx:
        assert tx.list_events(7, date(2024, 1, 15)) == []

    sql, params = cursor.executed[0]
    assert "event_time >= %s AND event_time < %s" in sql
    assert params == (7, datetime(2024, 1, 15), datetime(2024, 1, 16))
