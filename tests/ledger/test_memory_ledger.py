from __future__ import annotations

from datetime import date, datetime

import pytest

from src.attendance_ledger.attendance_ledger.core.enums import EventKind
from src.attendance_ledger.attendance_ledger.core.exceptions import RecordNotFoundError
from src.attendance_ledger.attendance_ledger.ledger.memory_ledger_repository import InMemoryLedgerStore


def test_original_timestamp_survives_repeated_edits():
    store = InMemoryLedgerStore()
    first = datetime(2024, 1, 15, 9, 0)

    with store.transaction() as tx:
        event = tx.insert_event(1, EventKind.START, first)
    assert event.modified is False
    assert event.original_timestamp is None

    for minute in (30, 15, 45):
        target = datetime(2024, 1, 15, 8, minute)
        with store.transaction() as tx:
            tx.update_event(event.event_id, target)
        with store.transaction() as tx:
            current = tx.get_event(event.event_id)
        assert current.timestamp == target
        assert current.modified is True
        assert current.original_timestamp == first


def test_events_are_listed_in_time_order_per_user_and_date():
    store = InMemoryLedgerStore()
    with store.transaction() as tx:
        tx.insert_event(1, EventKind.END, datetime(2024, 1, 15, 17, 0))
        tx.insert_event(1, EventKind.START, datetime(2024, 1, 15, 9, 0))
        tx.insert_event(2, EventKind.START, datetime(2024, 1, 15, 10, 0))
        tx.insert_event(1, EventKind.START, datetime(2024, 1, 16, 9, 0))

    with store.transaction() as tx:
        events = tx.list_events(1, date(2024, 1, 15))
        dates = tx.list_event_dates(1, date(2024, 1, 1), date(2024, 1, 31))

    assert [e.kind for e in events] == [EventKind.START, EventKind.END]
    assert dates == [date(2024, 1, 16), date(2024, 1, 15)]


def test_failed_transaction_leaves_state_untouched():
    store = InMemoryLedgerStore()

    with pytest.raises(RecordNotFoundError):
        with store.transaction() as tx:
            tx.insert_event(1, EventKind.START, datetime(2024, 1, 15, 9, 0))
            tx.delete_event(999)

    with store.transaction() as tx:
        assert tx.list_events(1, date(2024, 1, 15)) == []
