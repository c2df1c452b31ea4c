# storefront/config.py
from __future__ import annotations

import os

from pydantic import BaseModel, Field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    data_dir: str = Field(default_factory=lambda: os.getenv("STORE_DATA_DIR", "./data"))
    session_ttl_days: int = Field(default_factory=lambda: _env_int("SESSION_TTL_DAYS", 30))

    admin_username: str = Field(default_factory=lambda: os.getenv("ADMIN_USERNAME", "admin"))
    # passlib hash or plain text; admin login is refused while unset
    admin_password_hash: str | None = Field(default_factory=lambda: os.getenv("ADMIN_PASSWORD_HASH") or None)
    admin_session_timeout_hours: int = Field(default_factory=lambda: _env_int("ADMIN_SESSION_TIMEOUT_HOURS", 8))

    # raise PersistenceError (HTTP 500) when the database file cannot be written
    strict_persistence: bool = Field(default_factory=lambda: _env_flag("STRICT_PERSISTENCE", "1"))

    # ISO code; picks the symbol used in order summaries
    currency_default: str = Field(default_factory=lambda: os.getenv("CURRENCY", "INR").upper())

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
