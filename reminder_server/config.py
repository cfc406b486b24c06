"""Configuration management for the Reminder Scheduler."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


def _load_env_file() -> None:
    """Load .env from root directory if present."""
    env_path = Path(__file__).parent.parent / ".env"
    if not env_path.is_file():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                key, value = stripped.split("=", 1)
                key, value = key.strip(), value.strip().strip("'\"")
                if key and value and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        pass


_load_env_file()


DEFAULT_APP_NAME = "Reminder Scheduler Server"
DEFAULT_APP_VERSION = "1.0.0"


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


class Settings(BaseModel):
    """Application settings with environment fallbacks."""

    # App metadata
    app_name: str = Field(default=DEFAULT_APP_NAME)
    app_version: str = Field(default=DEFAULT_APP_VERSION)

    # Server runtime
    server_host: str = Field(default=os.getenv("REMINDER_SERVER_HOST", "0.0.0.0"))
    server_port: int = Field(default=_env_int("REMINDER_SERVER_PORT", 8001))

    # Supabase database
    supabase_url: Optional[str] = Field(default=os.getenv("SUPABASE_URL"))
    supabase_key: Optional[str] = Field(default=os.getenv("SUPABASE_KEY"))

    # Storage backend for trigger bookkeeping and the notification scheduler
    storage_backend: str = Field(default=os.getenv("REMINDER_STORAGE_BACKEND", "memory"))
    kv_table: str = Field(default="reminder_kv")
    triggers_table: str = Field(default="scheduled_notifications")

    # Scheduling policy
    near_window_seconds: int = Field(default=_env_int("REMINDER_NEAR_WINDOW_SECONDS", 300))
    nudge_threshold_seconds: int = Field(default=3)
    nudge_seconds: int = Field(default=2)
    default_reminder_time: str = Field(default="09:00")
    max_weekly_triggers: int = Field(default=7)
    max_daily_triggers: int = Field(default=1)
    reminder_timezone: Optional[str] = Field(default=os.getenv("REMINDER_TIMEZONE"))

    # Delivery simulation
    dispatch_interval_seconds: int = Field(default=_env_int("REMINDER_DISPATCH_INTERVAL", 30))

    # HTTP behaviour
    cors_allow_origins_raw: str = Field(default=os.getenv("REMINDER_SERVER_CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000,http://localhost:8081"))
    enable_docs: bool = Field(default=os.getenv("REMINDER_SERVER_ENABLE_DOCS", "1") != "0")
    docs_url: Optional[str] = Field(default=os.getenv("REMINDER_SERVER_DOCS_URL", "/docs"))

    @property
    def cors_allow_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_allow_origins_raw.strip() in {"", "*"}:
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins_raw.split(",") if origin.strip()]

    @property
    def resolved_docs_url(self) -> Optional[str]:
        """Return documentation URL when docs are enabled."""
        return (self.docs_url or "/docs") if self.enable_docs else None

    @property
    def uses_supabase(self) -> bool:
        """Flag indicating reminder state lives in Supabase tables."""
        return self.storage_backend.strip().lower() == "supabase"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
