"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    supabase_url: str = Field(default="http://localhost:54321", alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    password_reset_redirect_url: str | None = Field(
        default=None, alias="PASSWORD_RESET_REDIRECT_URL"
    )
    session_check_timeout_seconds: float = Field(
        default=10.0, alias="SESSION_CHECK_TIMEOUT_SECONDS"
    )
    profile_load_timeout_seconds: float = Field(
        default=15.0, alias="PROFILE_LOAD_TIMEOUT_SECONDS"
    )
    http_timeout_seconds: float | None = Field(
        default=None, alias="HTTP_TIMEOUT_SECONDS"
    )
    session_file: Path | None = Field(default=None, alias="SESSION_FILE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    @property
    def rest_url(self) -> str:
        """Return the base URL of the row API."""

        return f"{self.supabase_url.rstrip('/')}/rest/v1"

    @property
    def auth_url(self) -> str:
        """Return the base URL of the authentication API."""

        return f"{self.supabase_url.rstrip('/')}/auth/v1"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
