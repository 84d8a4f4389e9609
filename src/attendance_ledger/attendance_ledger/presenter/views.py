"""View-models handed to the outer surface.

They carry selection keys, display strings and flags only; no widget concepts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence, Union

from ..common.datetime_utils import format_clock, format_duration_minutes
from ..core.constants import MAX_SELECTION_ITEMS, SELECT_ALL_KEY
from ..core.enums import CorrectionAction, EventKind, FlowState, ReportPeriodKind, SessionAnomaly
from ..ledger.model import AttendanceEvent
from ..sessions.model import SessionDraft, WorkSession


@dataclass(frozen=True)
class LedgerItem:
    selection_key: str
    event_id: int
    kind: EventKind
    time: str
    timestamp: datetime
    modified: bool
    original_time: Optional[str] = None


@dataclass(frozen=True)
class LedgerView:
    user_id: int
    work_date: date
    items: list[LedgerItem]
    page: int = 0
    has_more: bool = False
    total: int = 0
    select_all_key: Optional[str] = None


@dataclass(frozen=True)
class SessionSummaryView:
    work_date: date
    start: str
    end: Optional[str]
    total_minutes: Optional[int]
    duration: Optional[str]
    completed: bool
    anomaly: Optional[SessionAnomaly] = None


@dataclass(frozen=True)
class DayStatusView:
    ledger: LedgerView
    sessions: list[SessionSummaryView]
    total_minutes: int
    total_hours: str
    working: bool


@dataclass(frozen=True)
class HistoryView:
    user_id: int
    dates: list[date]


@dataclass(frozen=True)
class CommandResult:
    message: str
    event: LedgerItem
    session: Optional[SessionSummaryView] = None


@dataclass(frozen=True)
class DayTotalView:
    work_date: date
    session_count: int
    total_minutes: int
    total_hours: str
    in_progress: int = 0
    anomalies: int = 0


@dataclass(frozen=True)
class ReportView:
    kind: ReportPeriodKind
    start_date: date
    end_date: date
    days: list[DayTotalView]
    total_minutes: int
    total_hours: str
    in_progress: list[SessionSummaryView] = field(default_factory=list)
    flagged: list[SessionSummaryView] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationFailure:
    code: str
    message: str


@dataclass(frozen=True)
class PreconditionFailure:
    code: str
    message: str


@dataclass(frozen=True)
class FlowExpired:
    code: str = "session_expired"
    message: str = "This correction has expired or was already completed. Please start again."


@dataclass(frozen=True)
class OperationFailed:
    code: str = "storage_error"
    message: str = "The change could not be saved. Nothing was modified, please try again."


Notice = Union[ValidationFailure, PreconditionFailure, FlowExpired, OperationFailed]


@dataclass(frozen=True)
class PendingChange:
    """What a confirm would commit, shown in the confirmation prompt."""

    action: CorrectionAction
    description: str
    kind: Optional[EventKind] = None
    time: Optional[str] = None
    event_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class FlowStep:
    session_id: Optional[str]
    state: FlowState
    action: Optional[CorrectionAction] = None
    ledger: Optional[LedgerView] = None
    choices: list[str] = field(default_factory=list)
    pending: Optional[PendingChange] = None
    notice: Optional[Notice] = None
    committed: bool = False


def ledger_item(event: AttendanceEvent) -> LedgerItem:
    return LedgerItem(
        selection_key=str(event.event_id),
        event_id=event.event_id,
        kind=event.kind,
        time=format_clock(event.timestamp),
        timestamp=event.timestamp,
        modified=event.modified,
        original_time=format_clock(event.original_timestamp) if event.original_timestamp else None,
    )


def ledger_view(
    user_id: int,
    work_date: date,
    events: Sequence[AttendanceEvent],
    *,
    page: int = 0,
    offer_select_all: bool = False,
) -> LedgerView:
    """Time-ordered page of a date's events, at most MAX_SELECTION_ITEMS per page."""
    ordered = sorted(events, key=lambda e: (e.timestamp, e.event_id))
    page = max(int(page), 0)
    start = page * MAX_SELECTION_ITEMS
    chunk = ordered[start : start + MAX_SELECTION_ITEMS]
    return LedgerView(
        user_id=user_id,
        work_date=work_date,
        items=[ledger_item(e) for e in chunk],
        page=page,
        has_more=start + MAX_SELECTION_ITEMS < len(ordered),
        total=len(ordered),
        select_all_key=SELECT_ALL_KEY if offer_select_all and len(ordered) > 1 else None,
    )


def session_summary(session: Union[WorkSession, SessionDraft]) -> SessionSummaryView:
    return SessionSummaryView(
        work_date=session.work_date,
        start=format_clock(session.start_time),
        end=format_clock(session.end_time) if session.end_time else None,
        total_minutes=session.total_minutes,
        duration=format_duration_minutes(session.total_minutes) if session.total_minutes is not None else None,
        completed=session.completed,
        anomaly=session.anomaly,
    )
