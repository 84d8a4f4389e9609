from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..common.datetime_utils import month_bounds, week_bounds
from ..core.enums import ReportPeriodKind


@dataclass(frozen=True)
class ReportPeriod:
    kind: ReportPeriodKind
    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @classmethod
    def containing(cls, kind: ReportPeriodKind, day: date) -> "ReportPeriod":
        """Day, Monday-based week or calendar month that holds `day`."""
        if kind == ReportPeriodKind.WEEKLY:
            start, end = week_bounds(day)
        elif kind == ReportPeriodKind.MONTHLY:
            start, end = month_bounds(day)
        else:
            start, end = day, day
        return cls(kind=kind, start_date=start, end_date=end)
