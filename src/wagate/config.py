"""Gateway settings, loaded from environment variables (and an optional .env file).

Variable names are unprefixed (``PORT``, ``WEBHOOK_URL``, ...) so the gateway
drops into the same container environments the Node gateway ran in.

Created: 2026-10-19
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_dir() -> Path:
    """Directory for gateway-owned files (session database)."""
    return Path.home() / ".wagate"


class Settings(BaseSettings):
    """Runtime configuration for the gateway."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    host: str = "0.0.0.0"
    # 0 binds an ephemeral port
    port: int = Field(default=8080, ge=0, le=65535)

    # Forwarder becomes a no-op when unset
    webhook_url: str | None = None
    webhook_timeout: float = 10.0

    session_db_path: str = Field(
        default_factory=lambda: str(get_config_dir() / "session.sqlite3")
    )
    session_start_delay: float = Field(default=2.0, ge=0)
    send_timeout: float = 30.0
    shutdown_grace: float = 10.0

    log_level: str = "INFO"

    @field_validator("webhook_url", mode="before")
    @classmethod
    def _blank_url_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
