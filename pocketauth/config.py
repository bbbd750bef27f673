"""
Application Configuration.

Pydantic Settings model for the PocketAuth application.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Storage ---
    USER_DB_PATH: Path = Path("auth.db")
    SESSION_DB_PATH: Path = Path("session_store.db")

    # --- Session cache ---
    SESSION_SALT_PATH: Path = Field(
        default_factory=lambda: Path.home() / ".pocketauth_session_salt"
    )
    SESSION_MAX_AGE_DAYS: int = 7
    SESSION_KEY_ITERATIONS: int = 600_000

    # --- Password hashing ---
    PASSWORD_HASH_ITERATIONS: int = 600_000

    # --- Registration form ---
    CONTACT_NUMBER_MAX_DIGITS: int = 11

    # --- Logging ---
    LOG_FILE: str = "pocketauth.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "POCKETAUTH_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when no ``.env`` file is present.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        which puts both databases in the current working directory.
        """
        _log = logging.getLogger("pocketauth.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if self.PASSWORD_HASH_ITERATIONS < 100_000:
            _log.warning(
                "PASSWORD_HASH_ITERATIONS=%d is below the recommended "
                "minimum; use low values for tests only.",
                self.PASSWORD_HASH_ITERATIONS,
            )

        return self


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern so the fast path skips the lock.

    Prefer direct constructor injection of ``AppConfig``; this factory
    exists for the logger and the entry point.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
