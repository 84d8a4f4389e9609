from __future__ import annotations

from datetime import date
from typing import Optional

from ..common.datetime_utils import Clock
from ..common.logging import get_logger
from ..common.retry import read_with_retry
from ..core.enums import ReportPeriodKind
from ..core.exceptions import InvalidFormatError
from ..ledger.repository import LedgerStore
from ..presenter.presenter import NullPresenter, Presenter
from ..presenter.views import ReportView
from .aggregator import aggregate
from .model import ReportPeriod

logger = get_logger(__name__)


class ReportService:
    def __init__(self, store: LedgerStore, clock: Clock, *, presenter: Optional[Presenter] = None):
        self._store = store
        self._clock = clock
        self._presenter = presenter or NullPresenter()

    def report(self, user_id: int, kind: ReportPeriodKind | str, *, day: Optional[date] = None) -> ReportView:
        try:
            kind = ReportPeriodKind(kind)
        except ValueError:
            raise InvalidFormatError(f"Unknown report period: {kind}")
        period = ReportPeriod.containing(kind, day or self._clock.now().date())

        def read():
            with self._store.transaction() as tx:
                return tx.list_sessions(int(user_id), period.start_date, period.end_date)

        sessions = read_with_retry(read)
        view = aggregate(sessions, period)
        logger.info(
            "%s report for user %s (%s..%s): %d sessions, %d minutes",
            period.kind.value,
            user_id,
            period.start_date,
            period.end_date,
            len(sessions),
            view.total_minutes,
        )
        self._presenter.present(view)
        return view

    def daily(self, user_id: int, *, day: Optional[date] = None) -> ReportView:
        return self.report(user_id, ReportPeriodKind.DAILY, day=day)

    def weekly(self, user_id: int, *, day: Optional[date] = None) -> ReportView:
        return self.report(user_id, ReportPeriodKind.WEEKLY, day=day)

    def monthly(self, user_id: int, *, day: Optional[date] = None) -> ReportView:
        return self.report(user_id, ReportPeriodKind.MONTHLY, day=day)
