from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.attendance_ledger.attendance_ledger.common.datetime_utils import (
    FixedClock,
    day_bounds,
    format_duration_minutes,
    month_bounds,
    parse_clock_time,
    week_bounds,
    whole_minutes,
)
from src.attendance_ledger.attendance_ledger.core.exceptions import InvalidFormatError, OutOfRangeError


@pytest.mark.parametrize(
    "text,expected",
    [
        ("09:30", time(9, 30)),
        ("9:30", time(9, 30)),
        ("0:00", time(0, 0)),
        ("23:59", time(23, 59)),
        (" 7:05 ", time(7, 5)),
    ],
)
def test_parse_clock_time_accepts_24h_with_or_without_leading_zero(text, expected):
    assert parse_clock_time(text) == expected


@pytest.mark.parametrize("text", ["", "9", "9.30", "09:3", "123:00", "ab:cd", "09:30:00", "-1:30"])
def test_parse_clock_time_rejects_bad_format(text):
    with pytest.raises(InvalidFormatError):
        parse_clock_time(text)


@pytest.mark.parametrize("text", ["24:00", "12:60", "99:99"])
def test_parse_clock_time_rejects_out_of_range(text):
    with pytest.raises(OutOfRangeError):
        parse_clock_time(text)


def test_whole_minutes_floors_seconds():
    start = datetime(2024, 1, 15, 9, 0, 0)
    assert whole_minutes(start, datetime(2024, 1, 15, 9, 59, 59)) == 59
    assert whole_minutes(start, start) == 0


def test_period_bounds():
    # 2024-01-17 is a Wednesday
    assert week_bounds(date(2024, 1, 17)) == (date(2024, 1, 15), date(2024, 1, 21))
    assert week_bounds(date(2024, 1, 15)) == (date(2024, 1, 15), date(2024, 1, 21))
    assert week_bounds(date(2024, 1, 21)) == (date(2024, 1, 15), date(2024, 1, 21))
    assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
    start, end = day_bounds(date(2024, 1, 15))
    assert start == datetime(2024, 1, 15)
    assert end == datetime(2024, 1, 16)


def test_format_duration_and_fixed_clock():
    assert format_duration_minutes(510) == "08:30"
    assert format_duration_minutes(0) == "00:00"

    clock = FixedClock(datetime(2024, 1, 15, 9, 0))
    clock.advance(minutes=90)
    assert clock.now() == datetime(2024, 1, 15, 10, 30)
