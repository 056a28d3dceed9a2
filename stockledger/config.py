# stockledger/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/stockledger.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (postgresql://... in production)
        "sqlite:///stockledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Movement writes retry on lock timeouts / version conflicts, never on business rejections
    MOVEMENT_RETRY_ATTEMPTS = _env_int("MOVEMENT_RETRY_ATTEMPTS", 3)
    MOVEMENT_RETRY_BACKOFF = _env_float("MOVEMENT_RETRY_BACKOFF", 0.1)

    PROCESSED_EVENT_RETENTION_DAYS = _env_int("PROCESSED_EVENT_RETENTION_DAYS", 90)
    SYNC_MAX_EVENTS = _env_int("SYNC_MAX_EVENTS", 200)

    # Comma-separated browser origins allowed to call the API (back-office tools)
    CORS_ALLOWED_ORIGINS = os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    )
