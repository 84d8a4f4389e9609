from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .common.logging import get_logger
from .core.constants import DEFAULT_CORRECTION_TIMEOUT_MINUTES, DEFAULT_LEDGER_UTC_OFFSET_HOURS
from .corrections.service import CorrectionFlowService
from .corrections.session_store import CorrectionSessionStore, InMemoryCorrectionSessionStore
from .database.connection import DBConfig, DatabaseConnection
from .ledger.memory_ledger_repository import InMemoryLedgerStore
from .ledger.mysql_ledger_repository import MySQLLedgerStore
from .ledger.repository import LedgerStore
from .presenter.presenter import LoggingPresenter
from .reports.service import ReportService
from .sessions.reconciler import SessionReconciler
from .users.memory_user_repository import InMemoryUserRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService

logger = get_logger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    clock: Clock

    users_repo: UserRepository
    ledger_store: LedgerStore
    correction_sessions: CorrectionSessionStore
    reconciler: SessionReconciler

    user_service: UserService
    attendance_service: AttendanceService
    correction_service: CorrectionFlowService
    report_service: ReportService


def build_container(
    *,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    utc_offset_hours: int = DEFAULT_LEDGER_UTC_OFFSET_HOURS,
    correction_timeout_minutes: int = DEFAULT_CORRECTION_TIMEOUT_MINUTES,
    clock: Optional[Clock] = None,
) -> Container:
    clock = clock or SystemClock(utc_offset_hours)

    conn: Optional[DatabaseConnection] = None
    if backend == "memory":
        users_repo: UserRepository = InMemoryUserRepository(now=clock.now)
        ledger_store: LedgerStore = InMemoryLedgerStore(now=clock.now)
    elif backend == "mysql":
        if not db_config:
            raise ValueError("DB_CONFIG is required for the mysql backend")
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        users_repo = MySQLUserRepository(conn)
        ledger_store = MySQLLedgerStore(conn)
        logger.info("Ledger database: %s", conn.describe())
    else:
        raise ValueError(f"Unknown LEDGER_BACKEND: {backend!r} (expected 'mysql' or 'memory')")
    logger.info("Ledger backend: %s", backend)

    presenter = LoggingPresenter()
    correction_sessions = InMemoryCorrectionSessionStore()
    reconciler = SessionReconciler(ledger_store)

    user_service = UserService(users_repo)
    attendance_service = AttendanceService(ledger_store, reconciler, clock, presenter=presenter)
    correction_service = CorrectionFlowService(
        ledger_store,
        reconciler,
        correction_sessions,
        clock,
        timeout_minutes=correction_timeout_minutes,
        presenter=presenter,
    )
    report_service = ReportService(ledger_store, clock, presenter=presenter)

    return Container(
        conn=conn,
        clock=clock,
        users_repo=users_repo,
        ledger_store=ledger_store,
        correction_sessions=correction_sessions,
        reconciler=reconciler,
        user_service=user_service,
        attendance_service=attendance_service,
        correction_service=correction_service,
        report_service=report_service,
    )
