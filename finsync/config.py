"""
Application Configuration.

Pydantic Settings model for the FinSync record-synchronisation layer.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Local durable store ---
    SQLITE_PATH: str = "finsync_local.db"

    # --- In-memory cache ---
    CACHE_TTL_S: float = Field(default=3600.0, gt=0)
    CACHE_MAX_ENTRIES: int = Field(default=1000, ge=1)

    # --- Pagination / derived views ---
    PAGE_SIZE: int = Field(default=50, ge=1)
    RECENT_LIMIT: int = Field(default=10, ge=0)

    # --- Logging ---
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FILE: str = "finsync.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when the remote store is not configured.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        Without a Supabase URL every coordinator degrades to the local
        snapshot store, which operators should know about at boot.
        """
        _log = logging.getLogger("finsync.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found — all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty — remote sync is disabled. "
                "Records will be served from the local snapshot store only."
            )

        return self

    @property
    def has_remote(self) -> bool:
        """``True`` when both Supabase URL and key are configured."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY.get_secret_value())


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern to avoid the lock overhead on the fast path.

    Prefer constructor injection of ``AppConfig``; this factory exists for
    the logger, which is created before any composition root runs.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
