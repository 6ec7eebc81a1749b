from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage: "memory" keeps everything in-process (local dev only)
    storage_backend: Literal["supabase", "memory"] = "memory"

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Assessment windows (hours)
    readings_window_hours: int = 48
    symptoms_window_hours: int = 72
    alert_symptoms_window_hours: int = 24

    # Background assessment queue
    assessment_workers: int = 4

    # Notifications
    notification_webhook_url: str = ""   # optional, leave blank to log only
    notification_timeout_seconds: float = 10.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""
    return Settings()
