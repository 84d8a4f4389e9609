from __future__ import annotations

import importlib

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.logging import configure_logging, get_logger
from .container import build_container
from .corrections.controller import register as register_corrections
from .database.bootstrap import apply_schema, list_tables
from .reports.controller import register as register_reports

logger = get_logger(__name__)


def create_app(**overrides) -> Flask:
    """Build the HTTP shell. `overrides` are passed to build_container (tests inject a clock)."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    db_config = getattr(settings, "DB_CONFIG")
    backend = str(getattr(settings, "LEDGER_BACKEND", "mysql")).lower()
    logger.info(
        "settings=%s backend=%s db=%s@%s:%s/%s",
        settings_module,
        backend,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        backend=backend,
        utc_offset_hours=int(getattr(settings, "LEDGER_UTC_OFFSET_HOURS", 9)),
        correction_timeout_minutes=int(getattr(settings, "CORRECTION_TIMEOUT_MINUTES", 5)),
        **overrides,
    )
    app.extensions["attendance_ledger"] = container

    register_attendance(app, container)
    register_corrections(app, container)
    register_reports(app, container)

    return app
