"""Interactive correction flow: select action -> select record -> enter time -> confirm.

Every public method handles one interaction and returns a FlowStep. Validation
and precondition failures come back as notices on that step; only the confirm
transition writes to the ledger, and it does so at most once per session.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Optional, Sequence, Type, TypeVar

from ..common.datetime_utils import Clock, combine, format_clock, parse_clock_time
from ..common.logging import get_logger
from ..common.retry import read_with_retry
from ..common.validators import validate_correctable_date, validate_new_event, validate_reasonable_time
from ..core.constants import DEFAULT_CORRECTION_TIMEOUT_MINUTES, SELECT_ALL_KEY
from ..core.enums import CorrectionAction, EventKind, FlowState
from ..core.exceptions import (
    DomainError,
    InvalidFormatError,
    InvalidTransitionError,
    NoRecordsToEditError,
    PreconditionError,
    RecordNotFoundError,
    SessionExpiredError,
    StorageError,
    ValidationError,
)
from ..ledger.model import AttendanceEvent, NewEvent
from ..ledger.repository import LedgerStore
from ..presenter.presenter import NullPresenter, Presenter
from ..presenter.views import (
    FlowExpired,
    FlowStep,
    OperationFailed,
    PendingChange,
    PreconditionFailure,
    ValidationFailure,
    ledger_view,
)
from ..sessions.reconciler import LedgerMutation, SessionReconciler
from .model import CorrectionSession, PendingAdd, PendingDelete, PendingEdit, PendingValue
from .session_store import CorrectionSessionStore

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)

_ACTION_STATES = {
    FlowState.SELECTING_ACTION,
    FlowState.SELECTING_TARGET,
    FlowState.AWAITING_NEW_RECORD_KIND,
    FlowState.AWAITING_TIME_INPUT,
    FlowState.AWAITING_CONFIRMATION,
}


def _coerce(enum_cls: Type[E], value: Any) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise InvalidFormatError(f"Unknown choice {value!r}, expected one of: {choices}")


def _describe(pending: PendingValue, events: Sequence[AttendanceEvent]) -> PendingChange:
    by_id = {e.event_id: e for e in events}
    if isinstance(pending, PendingEdit):
        target = by_id.get(pending.event_id)
        before = format_clock(target.timestamp) if target else "?"
        return PendingChange(
            action=CorrectionAction.EDIT,
            description=f"Change {target.kind.value if target else 'record'} {before} -> {format_clock(pending.timestamp)}",
            kind=target.kind if target else None,
            time=format_clock(pending.timestamp),
            event_ids=[pending.event_id],
        )
    if isinstance(pending, PendingAdd):
        return PendingChange(
            action=CorrectionAction.ADD,
            description=f"Add {pending.kind.value} record at {format_clock(pending.timestamp)}",
            kind=pending.kind,
            time=format_clock(pending.timestamp),
        )
    if pending.delete_all:
        description = f"Delete all {len(pending.event_ids)} records of the day"
    else:
        target = by_id.get(pending.event_ids[0])
        label = f"{target.kind.value} {format_clock(target.timestamp)}" if target else f"#{pending.event_ids[0]}"
        description = f"Delete {label}"
    return PendingChange(action=CorrectionAction.DELETE, description=description, event_ids=list(pending.event_ids))


class CorrectionFlowService:
    def __init__(
        self,
        store: LedgerStore,
        reconciler: SessionReconciler,
        sessions: CorrectionSessionStore,
        clock: Clock,
        *,
        timeout_minutes: int = DEFAULT_CORRECTION_TIMEOUT_MINUTES,
        presenter: Optional[Presenter] = None,
    ):
        self._store = store
        self._reconciler = reconciler
        self._sessions = sessions
        self._clock = clock
        self._timeout = timedelta(minutes=int(timeout_minutes))
        self._presenter = presenter or NullPresenter()

    # ---- helpers -------------------------------------------------------

    def _emit(self, step: FlowStep) -> FlowStep:
        self._presenter.present(step)
        return step

    def _list_events(self, user_id: int, work_date: date) -> Sequence[AttendanceEvent]:
        def read():
            with self._store.transaction() as tx:
                return tx.list_events(user_id, work_date)

        return read_with_retry(read)

    def _active(self, session_id: str, user_id: int) -> CorrectionSession:
        session = self._sessions.get(session_id)
        if session is None or session.user_id != int(user_id):
            raise SessionExpiredError("This correction has expired or was already completed")
        if session.is_expired(self._clock.now()):
            self._sessions.take(session_id)
            logger.info("Correction %s expired in state %s", session_id, session.state.value)
            raise SessionExpiredError("This correction timed out, please start again")
        return session

    def _advance(self, session: CorrectionSession, **changes) -> CorrectionSession:
        updated = replace(session, **changes)
        if not self._sessions.update(updated):
            raise SessionExpiredError("This correction has expired or was already completed")
        return updated

    @staticmethod
    def _require_state(session: CorrectionSession, *states: FlowState) -> None:
        if session.state not in states:
            raise InvalidTransitionError(
                f"This step is not available now (current step: {session.state.value})"
            )

    def _expired(self, session_id: str, exc: SessionExpiredError) -> FlowStep:
        return self._emit(
            FlowStep(session_id=session_id, state=FlowState.CANCELLED, notice=FlowExpired(message=str(exc)))
        )

    def _end(self, session_id: str, exc: PreconditionError) -> FlowStep:
        """Precondition failure that ends the flow."""
        self._sessions.take(session_id)
        return self._emit(
            FlowStep(
                session_id=session_id,
                state=FlowState.IDLE,
                notice=PreconditionFailure(code=exc.code, message=str(exc)),
            )
        )

    def _stay(self, session: CorrectionSession, exc: DomainError) -> FlowStep:
        """Failure that leaves the flow where it was; the user may retry."""
        if isinstance(exc, ValidationError):
            notice = ValidationFailure(code=exc.code, message=str(exc))
        else:
            notice = PreconditionFailure(code=exc.code, message=str(exc))
        return self._emit(
            FlowStep(session_id=session.session_id, state=session.state, action=session.action, notice=notice)
        )

    @staticmethod
    def _action_choices(events: Sequence[AttendanceEvent]) -> list[str]:
        if events:
            return [CorrectionAction.EDIT.value, CorrectionAction.DELETE.value, CorrectionAction.ADD.value]
        return [CorrectionAction.ADD.value]

    # ---- transitions ---------------------------------------------------

    def invoke(
        self,
        user_id: int,
        *,
        invoking_context: Any = None,
        work_date: Optional[date] = None,
        page: int = 0,
    ) -> FlowStep:
        """Idle -> SelectingAction. Lists the date's events (one page)."""
        now = self._clock.now()
        swept = self.sweep_expired()
        if swept:
            logger.info("Swept %d abandoned corrections", swept)

        work_date = work_date or now.date()
        try:
            validate_correctable_date(work_date, now.date())
        except ValidationError as exc:
            return self._emit(
                FlowStep(session_id=None, state=FlowState.IDLE, notice=ValidationFailure(exc.code, str(exc)))
            )

        try:
            events = self._list_events(user_id, work_date)
        except StorageError as exc:
            logger.error("Cannot open correction for user %s: %s", user_id, exc)
            return self._emit(FlowStep(session_id=None, state=FlowState.IDLE, notice=OperationFailed()))

        session = CorrectionSession(
            session_id=uuid.uuid4().hex,
            user_id=int(user_id),
            state=FlowState.SELECTING_ACTION,
            work_date=work_date,
            created_at=now,
            expires_at=now + self._timeout,
            invoking_context=invoking_context,
            page=max(int(page), 0),
        )
        self._sessions.save(session)
        logger.info("Correction %s opened for user %s on %s", session.session_id, user_id, work_date)
        return self._emit(
            FlowStep(
                session_id=session.session_id,
                state=session.state,
                ledger=ledger_view(user_id, work_date, events, page=session.page),
                choices=self._action_choices(events),
            )
        )

    def change_page(self, session_id: str, user_id: int, page: int) -> FlowStep:
        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        try:
            self._require_state(session, FlowState.SELECTING_ACTION, FlowState.SELECTING_TARGET)
            session = self._advance(session, page=max(int(page), 0))
            events = self._list_events(session.user_id, session.work_date)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except DomainError as exc:
            return self._stay(session, exc)
        except StorageError:
            return self._emit(FlowStep(session_id, session.state, action=session.action, notice=OperationFailed()))

        return self._emit(
            FlowStep(
                session_id=session_id,
                state=session.state,
                action=session.action,
                ledger=ledger_view(
                    session.user_id,
                    session.work_date,
                    events,
                    page=session.page,
                    offer_select_all=session.action == CorrectionAction.DELETE,
                ),
            )
        )

    def choose_action(self, session_id: str, user_id: int, action: CorrectionAction | str) -> FlowStep:
        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)

        try:
            self._require_state(session, FlowState.SELECTING_ACTION)
            chosen = _coerce(CorrectionAction, action)
            if chosen == CorrectionAction.ADD:
                session = self._advance(session, state=FlowState.AWAITING_NEW_RECORD_KIND, action=chosen)
                return self._emit(
                    FlowStep(
                        session_id=session_id,
                        state=session.state,
                        action=chosen,
                        choices=[EventKind.START.value, EventKind.END.value],
                    )
                )

            events = self._list_events(session.user_id, session.work_date)
            if not events:
                return self._end(session_id, NoRecordsToEditError(f"No records on {session.work_date} to {chosen.value}"))

            session = self._advance(session, state=FlowState.SELECTING_TARGET, action=chosen)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except DomainError as exc:
            return self._stay(session, exc)
        except StorageError:
            return self._emit(FlowStep(session_id, session.state, notice=OperationFailed()))

        return self._emit(
            FlowStep(
                session_id=session_id,
                state=session.state,
                action=chosen,
                ledger=ledger_view(
                    session.user_id,
                    session.work_date,
                    events,
                    page=session.page,
                    offer_select_all=chosen == CorrectionAction.DELETE,
                ),
            )
        )

    def pick_target(self, session_id: str, user_id: int, selection_key: str) -> FlowStep:
        """SelectingTarget -> AwaitingTimeInput (edit) or AwaitingConfirmation (delete)."""
        if str(selection_key).strip() == SELECT_ALL_KEY:
            return self.pick_all(session_id, user_id)

        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)

        try:
            self._require_state(session, FlowState.SELECTING_TARGET)
            events = self._list_events(session.user_id, session.work_date)
            try:
                event_id = int(str(selection_key).strip())
            except ValueError:
                raise ValidationError("Select one of the listed records")
            target = next((e for e in events if e.event_id == event_id), None)
            if target is None:
                raise ValidationError("Select one of the listed records")

            if session.action == CorrectionAction.EDIT:
                session = self._advance(session, state=FlowState.AWAITING_TIME_INPUT, target_event_id=event_id)
                return self._emit(
                    FlowStep(
                        session_id=session_id,
                        state=session.state,
                        action=session.action,
                        ledger=ledger_view(session.user_id, session.work_date, [target]),
                    )
                )

            pending = PendingDelete(event_ids=(event_id,))
            session = self._advance(
                session,
                state=FlowState.AWAITING_CONFIRMATION,
                target_event_id=event_id,
                pending_value=pending,
            )
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except DomainError as exc:
            return self._stay(session, exc)
        except StorageError:
            return self._emit(FlowStep(session_id, session.state, action=session.action, notice=OperationFailed()))

        return self._emit(
            FlowStep(
                session_id=session_id,
                state=session.state,
                action=session.action,
                pending=_describe(pending, events),
            )
        )

    def pick_all(self, session_id: str, user_id: int) -> FlowStep:
        """SelectingTarget -> AwaitingConfirmation for deleting every record of the date."""
        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)

        try:
            self._require_state(session, FlowState.SELECTING_TARGET)
            if session.action != CorrectionAction.DELETE:
                raise ValidationError("Select one record to edit")
            events = self._list_events(session.user_id, session.work_date)
            if not events:
                return self._end(session_id, NoRecordsToEditError(f"No records on {session.work_date} to delete"))
            pending = PendingDelete(event_ids=tuple(e.event_id for e in events), delete_all=True)
            session = self._advance(
                session,
                state=FlowState.AWAITING_CONFIRMATION,
                target_event_id=None,
                pending_value=pending,
            )
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except DomainError as exc:
            return self._stay(session, exc)
        except StorageError:
            return self._emit(FlowStep(session_id, session.state, action=session.action, notice=OperationFailed()))

        return self._emit(
            FlowStep(
                session_id=session_id,
                state=session.state,
                action=session.action,
                pending=_describe(pending, events),
            )
        )

    def pick_kind(self, session_id: str, user_id: int, kind: EventKind | str) -> FlowStep:
        """AwaitingNewRecordKind -> AwaitingTimeInput (create path)."""
        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)

        try:
            self._require_state(session, FlowState.AWAITING_NEW_RECORD_KIND)
            new_kind = _coerce(EventKind, kind)
            session = self._advance(
                session,
                state=FlowState.AWAITING_TIME_INPUT,
                new_kind=new_kind,
                target_event_id=None,
            )
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except DomainError as exc:
            return self._stay(session, exc)

        return self._emit(FlowStep(session_id=session_id, state=session.state, action=session.action))

    def submit_time(self, session_id: str, user_id: int, text: str) -> FlowStep:
        """AwaitingTimeInput -> AwaitingConfirmation when the time parses and does not collide."""
        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)

        try:
            self._require_state(session, FlowState.AWAITING_TIME_INPUT)
            timestamp = combine(session.work_date, parse_clock_time(text))
            validate_reasonable_time(timestamp, self._clock.now())
            events = self._list_events(session.user_id, session.work_date)

            if session.action == CorrectionAction.EDIT:
                target = next((e for e in events if e.event_id == session.target_event_id), None)
                if target is None:
                    return self._end(session_id, RecordNotFoundError("The selected record no longer exists"))
                validate_new_event(
                    events,
                    NewEvent(user_id=session.user_id, kind=target.kind, timestamp=timestamp),
                    exclude_event_id=target.event_id,
                )
                pending: PendingValue = PendingEdit(event_id=target.event_id, timestamp=timestamp)
            else:
                validate_new_event(events, NewEvent(user_id=session.user_id, kind=session.new_kind, timestamp=timestamp))
                pending = PendingAdd(kind=session.new_kind, timestamp=timestamp)

            session = self._advance(session, state=FlowState.AWAITING_CONFIRMATION, pending_value=pending)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except DomainError as exc:
            return self._stay(session, exc)
        except StorageError:
            return self._emit(FlowStep(session_id, session.state, action=session.action, notice=OperationFailed()))

        return self._emit(
            FlowStep(
                session_id=session_id,
                state=session.state,
                action=session.action,
                pending=_describe(pending, events),
            )
        )

    def confirm(self, session_id: str, user_id: int) -> FlowStep:
        """AwaitingConfirmation -> Idle, committing the pending change exactly once."""
        try:
            session = self._active(session_id, user_id)
            self._require_state(session, FlowState.AWAITING_CONFIRMATION)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except InvalidTransitionError as exc:
            return self._stay(session, exc)

        # Destroyed before the commit: a duplicate confirm finds nothing to apply.
        taken = self._sessions.take(session_id)
        if taken is None:
            return self._expired(session_id, SessionExpiredError("This correction was already completed"))

        try:
            with self._reconciler.mutation(taken.user_id) as m:
                self._apply(m, taken, self._clock.now())
        except ValidationError as exc:
            return self._emit(
                FlowStep(session_id, FlowState.IDLE, action=taken.action, notice=ValidationFailure(exc.code, str(exc)))
            )
        except PreconditionError as exc:
            return self._emit(
                FlowStep(session_id, FlowState.IDLE, action=taken.action, notice=PreconditionFailure(exc.code, str(exc)))
            )
        except StorageError as exc:
            logger.error("Correction %s failed to commit: %s", session_id, exc)
            return self._emit(FlowStep(session_id, FlowState.IDLE, action=taken.action, notice=OperationFailed()))

        logger.info("Correction %s committed (%s)", session_id, taken.action.value if taken.action else "-")
        try:
            events = self._list_events(taken.user_id, taken.work_date)
            ledger = ledger_view(taken.user_id, taken.work_date, events)
        except StorageError:
            ledger = None
        return self._emit(
            FlowStep(session_id, FlowState.IDLE, action=taken.action, ledger=ledger, committed=True)
        )

    def _apply(self, m: LedgerMutation, session: CorrectionSession, now: datetime) -> None:
        pending = session.pending_value
        events = m.list_events(session.work_date)

        if isinstance(pending, PendingEdit):
            target = m.get_event(pending.event_id)
            validate_reasonable_time(pending.timestamp, now)
            validate_new_event(
                events,
                NewEvent(user_id=session.user_id, kind=target.kind, timestamp=pending.timestamp),
                exclude_event_id=target.event_id,
            )
            m.update_event(target.event_id, pending.timestamp)
        elif isinstance(pending, PendingAdd):
            validate_reasonable_time(pending.timestamp, now)
            validate_new_event(events, NewEvent(user_id=session.user_id, kind=pending.kind, timestamp=pending.timestamp))
            m.insert_event(pending.kind, pending.timestamp)
        elif isinstance(pending, PendingDelete):
            # Only the records shown in the confirmation prompt; later additions stay.
            for event_id in pending.event_ids:
                m.delete_event(event_id)
        else:
            raise InvalidTransitionError("Nothing to confirm")

    def decline(self, session_id: str, user_id: int) -> FlowStep:
        """AwaitingConfirmation -> Idle without touching the ledger."""
        try:
            session = self._active(session_id, user_id)
            self._require_state(session, FlowState.AWAITING_CONFIRMATION)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)
        except InvalidTransitionError as exc:
            return self._stay(session, exc)

        if self._sessions.take(session_id) is None:
            return self._expired(session_id, SessionExpiredError("This correction was already completed"))
        logger.info("Correction %s declined", session_id)
        return self._emit(FlowStep(session_id=session_id, state=FlowState.IDLE, action=session.action))

    def cancel(self, session_id: str, user_id: int) -> FlowStep:
        """Any active state -> Cancelled."""
        try:
            session = self._active(session_id, user_id)
        except SessionExpiredError as exc:
            return self._expired(session_id, exc)

        if session.state not in _ACTION_STATES or self._sessions.take(session_id) is None:
            return self._expired(session_id, SessionExpiredError("This correction was already completed"))
        logger.info("Correction %s cancelled in state %s", session_id, session.state.value)
        return self._emit(FlowStep(session_id=session_id, state=FlowState.CANCELLED, action=session.action))

    def sweep_expired(self) -> int:
        return self._sessions.sweep_expired(self._clock.now())
