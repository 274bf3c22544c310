"""Client configuration using environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("http://localhost:8000"),
        validation_alias=AliasChoices(
            "CHAT_API_BASE_URL",
            "VITE_API_BASE_URL",
            "api_base_url",
        ),
    )
    # Long ceiling for AI correction tasks; applied to the transport only
    request_timeout: float = Field(
        default=120.0,
        validation_alias=AliasChoices("CHAT_API_TIMEOUT", "request_timeout"),
        ge=1,
    )
    connect_timeout: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "CHAT_API_CONNECT_TIMEOUT",
            "connect_timeout",
        ),
        gt=0,
    )
    token_path: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "chat-client" / "auth.json",
        validation_alias=AliasChoices("CHAT_TOKEN_PATH", "token_path"),
    )

    @property
    def base_url(self) -> str:
        """Return the API base URL without a trailing slash."""

        return str(self.api_base_url).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
