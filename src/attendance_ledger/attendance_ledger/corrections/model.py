from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Union

from ..core.enums import CorrectionAction, EventKind, FlowState


@dataclass(frozen=True)
class PendingEdit:
    event_id: int
    timestamp: datetime


@dataclass(frozen=True)
class PendingAdd:
    kind: EventKind
    timestamp: datetime


@dataclass(frozen=True)
class PendingDelete:
    event_ids: tuple[int, ...]
    delete_all: bool = False


PendingValue = Union[PendingEdit, PendingAdd, PendingDelete]


@dataclass(frozen=True)
class CorrectionSession:
    """One in-flight correction flow. Transient: never written to the ledger store.

    Each step stores a new instance (dataclasses.replace) under the same id.
    """

    session_id: str
    user_id: int
    state: FlowState
    work_date: date
    created_at: datetime
    expires_at: datetime
    invoking_context: Any = None
    action: Optional[CorrectionAction] = None
    target_event_id: Optional[int] = None
    new_kind: Optional[EventKind] = None
    pending_value: Optional[PendingValue] = None
    page: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
