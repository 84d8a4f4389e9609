from __future__ import annotations

from enum import Enum


class EventKind(str, Enum):
    """Loại bản ghi trong sổ chấm công (ledger)."""

    START = "start"
    END = "end"


class SessionAnomaly(str, Enum):
    """Flag attached to a derived work session that is not a clean Start/End pair."""

    ZERO_START = "zero_start"
    IMPLICIT_CLOSE = "implicit_close"
    NEGATIVE_DURATION = "negative_duration"


class CorrectionAction(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    ADD = "add"


class FlowState(str, Enum):
    """States of the interactive correction flow."""

    IDLE = "idle"
    SELECTING_ACTION = "selecting_action"
    SELECTING_TARGET = "selecting_target"
    AWAITING_NEW_RECORD_KIND = "awaiting_new_record_kind"
    AWAITING_TIME_INPUT = "awaiting_time_input"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CANCELLED = "cancelled"


class ReportPeriodKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
