"""
Application Configuration.

Pydantic Settings model for the Family Budget data layer.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Literal, Optional

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Storage backend selection ---
    DB_BACKEND: Literal["sqlite", "postgresql", "mongodb"] = "sqlite"

    # --- SQLite (embedded relational store) ---
    SQLITE_PATH: str = "family_budget.db"

    # --- PostgreSQL via Supabase (relational store) ---
    SUPABASE_URL: str = ""
    SUPABASE_KEY: SecretStr = SecretStr("")

    # --- MongoDB (document store) ---
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "family_budget"

    # Per-operation deadline applied to every driver.
    DB_TIMEOUT_S: float = 5.0

    # --- Domain defaults ---
    INVITE_VALIDITY_DAYS: int = 7
    DEFAULT_QUERY_LIMIT: int = 50
    MAX_QUERY_LIMIT: int = 1000
    PASSWORD_HASH_ITERATIONS: int = 600_000

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "family_budget.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when the selected backend is not configured.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a log line instead of a confusing driver error
        later on.
        """
        _log = logging.getLogger("family_budget.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; configuration loaded from "
                "environment variables or defaults."
            )

        if self.DB_BACKEND == "postgresql" and (
            not self.SUPABASE_URL or not self.SUPABASE_KEY.get_secret_value()
        ):
            _log.warning(
                "DB_BACKEND is 'postgresql' but SUPABASE_URL or SUPABASE_KEY "
                "is empty. Connection will fail at startup."
            )

        if self.DB_BACKEND == "mongodb" and not self.MONGODB_URI:
            _log.warning(
                "DB_BACKEND is 'mongodb' but MONGODB_URI is empty. "
                "Connection will fail at startup."
            )

        return self

    @property
    def log_level(self) -> int:
        """Numeric logging level resolved from ``LOG_LEVEL``."""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern so the fast path stays lock-free.

    Prefer direct constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
