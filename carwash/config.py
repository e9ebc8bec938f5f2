"""
Application Configuration.

Pydantic Settings model for the car wash booking board.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

from carwash.models.settings import AutoSchedule


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # Deadline applied to every PostgREST call (seconds).  Expiry is
    # reported as a store failure, never as a hung UI.
    REMOTE_TIMEOUT_S: float = Field(default=10.0, gt=0)

    # --- Calendar ---
    TIMEZONE: str = "Europe/Lisbon"

    # --- Automatic booking window (disabled = manual admin control only) ---
    AUTO_SCHEDULE_ENABLED: bool = False
    AUTO_OPEN_WEEKDAY: int = Field(default=3, ge=0, le=6)  # Thursday
    AUTO_OPEN_HOUR: int = Field(default=8, ge=0, le=23)
    AUTO_CLOSE_WEEKDAY: int = Field(default=5, ge=0, le=6)  # Saturday

    # --- First-run defaults ---
    DEFAULT_WEEKLY_CAPACITY: int = Field(default=10, ge=1)
    DEFAULT_LOGIN_IMAGE_URL: str = (
        "https://images.unsplash.com/photo-1520333789090-1afc82db536a"
        "?auto=format&fit=crop&q=80&w=1200"
    )
    BOOTSTRAP_ADMIN_EMAIL: str = "admin@vaidarbanho.pt"
    BOOTSTRAP_ADMIN_PASSWORD: SecretStr = SecretStr("")

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "carwash.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a log line instead of a confusing connection error.
        """
        _log = logging.getLogger("carwash.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; configuration comes from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL / SUPABASE_ANON_KEY are empty: every remote "
                "read and write will fail until they are configured."
            )

        return self

    @property
    def auto_schedule(self) -> AutoSchedule:
        """Automatic window configuration as a value for the policy layer."""
        return AutoSchedule(
            enabled=self.AUTO_SCHEDULE_ENABLED,
            open_weekday=self.AUTO_OPEN_WEEKDAY,
            open_hour=self.AUTO_OPEN_HOUR,
            close_weekday=self.AUTO_CLOSE_WEEKDAY,
        )


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the first initialisation is
    thread-safe without paying for the lock on every call.

    Prefer constructor injection of ``AppConfig``; this factory exists for
    the logger, which is created before the composition root runs.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
