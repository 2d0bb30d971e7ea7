"""Runtime configuration for the hotel search engine.

Relies on pydantic-settings so that environment variables (prefixed with
``HOTEL_SEARCH_``) can override defaults.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Captures runtime configuration for provider access and the CLI."""

    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the booking-provider REST backend",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token forwarded unchanged on every provider call",
    )
    http_timeout_s: float = Field(default=30.0, description="Per-request HTTP timeout in seconds")
    default_nationality: str = Field(
        default="IN",
        description="Guest nationality sent with search requests when the context has none",
    )
    search_max_pages: int = Field(
        default=5, description="Maximum number of result pages the CLI follows per search"
    )
    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))
    download_dir: Path = Field(default=Path("data/downloads"))

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("api_base_url")
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("api_base_url must not be empty")
        return value.rstrip("/")

    @field_validator("default_nationality")
    def _normalise_nationality(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 2:
            raise ValueError("default_nationality must be a two-letter country code")
        return value

    @field_validator("http_timeout_s")
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("http_timeout_s must be positive")
        return value

    @field_validator("search_max_pages")
    def _validate_max_pages(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("search_max_pages must be positive")
        return value

    @field_validator("log_dir", "download_dir", mode="before")
    def _expand_dir(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        return Path(value).expanduser()

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.download_dir.mkdir(parents=True, exist_ok=True)

    def auth_token(self) -> str:
        if not self.api_token:
            logger.warning("No HOTEL_SEARCH_API_TOKEN configured; provider calls will be unauthenticated")
            return ""
        return self.api_token
