import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_ledger"),
}

DEBUG = False

LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "mysql")
LEDGER_UTC_OFFSET_HOURS = int(os.getenv("LEDGER_UTC_OFFSET_HOURS", "9"))
CORRECTION_TIMEOUT_MINUTES = int(os.getenv("CORRECTION_TIMEOUT_MINUTES", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
