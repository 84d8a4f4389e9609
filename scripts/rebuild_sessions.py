"""Recompute stored work sessions for one user from their events.

Usage: python scripts/rebuild_sessions.py <external_id> <YYYY-MM-DD> [<YYYY-MM-DD>]
"""
from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import importlib

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.attendance_ledger.attendance_ledger.common.datetime_utils import parse_iso_date
from src.attendance_ledger.attendance_ledger.common.logging import configure_logging, get_logger
from src.attendance_ledger.attendance_ledger.container import build_container

logger = get_logger("scripts.rebuild_sessions")


def main(argv: list[str]) -> int:
    if len(argv) not in (2, 3):
        print(__doc__.strip())
        return 2

    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(
        db_config=settings.DB_CONFIG,
        backend=getattr(settings, "LEDGER_BACKEND", "mysql"),
        utc_offset_hours=getattr(settings, "LEDGER_UTC_OFFSET_HOURS", 9),
    )

    user = container.user_service.resolve(argv[0])
    start = parse_iso_date(argv[1])
    end = parse_iso_date(argv[2]) if len(argv) == 3 else start

    day = start
    while day <= end:
        sessions = container.reconciler.rebuild(user.user_id, day)
        logger.info("%s: %d sessions", day, len(sessions))
        day += timedelta(days=1)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
