"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./feed.db",
        description="Connection URL of the store queried for like events",
        min_length=1,
    )
    state_database_url: str = Field(
        default="sqlite:///./notification_state.db",
        description="Connection URL of the local store holding read watermarks",
        min_length=1,
    )
    notification_fetch_limit: int = Field(
        default=40,
        description="Maximum number of like events fetched per refresh",
        ge=1,
        le=200,
    )
    notification_fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Seconds to wait for the event source before giving up",
        gt=0,
    )
    notification_poll_interval_seconds: float = Field(
        default=0.0,
        description="Seconds between periodic refreshes; 0 disables polling",
        ge=0,
    )
    notification_idle_ttl_seconds: float = Field(
        default=900.0,
        description="Seconds without requests before a disconnected viewer's feed is released; 0 keeps feeds forever",
        ge=0,
    )
    notification_snippet_length: int = Field(
        default=80,
        description="Maximum number of characters of post content shown in a group",
        ge=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to render absolute notification timestamps",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:8081"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
