# backend/umipos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance folder unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///umipos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Background removal of expired/revoked session tokens
    SESSION_CLEANUP_ENABLED = _env_bool("SESSION_CLEANUP_ENABLED", True)
    SESSION_CLEANUP_INTERVAL_MINUTES = int(os.environ.get("SESSION_CLEANUP_INTERVAL_MINUTES", "15"))

    # Sales tax in basis points (1600 = 16%)
    SALES_TAX_RATE_BPS = int(os.environ.get("SALES_TAX_RATE_BPS", "0"))

    # Concurrent live sessions per user; 0 disables the limit
    MAX_DEVICES_PER_USER = int(os.environ.get("MAX_DEVICES_PER_USER", "0"))
