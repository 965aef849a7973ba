"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings sourced from .env / environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────────────
    calstore_env: str = "development"
    calstore_log_level: str = "INFO"

    # ── Database ─────────────────────────────────────────────────────
    database_path: str = "data/calendar.db"
    sqlite_cache_size_kib: int = Field(default=64000, gt=0)

    # ── Calendar engine ──────────────────────────────────────────────
    recurrence_limit: int = Field(default=365, ge=1)
    strict_decoding: bool = False

    @field_validator("calstore_log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


def database_url_for(path: str | Path) -> str:
    """Build an aiosqlite URL; ``:memory:`` maps to an in-memory database."""
    if str(path) == ":memory:":
        return "sqlite+aiosqlite:///:memory:"
    return f"sqlite+aiosqlite:///{path}"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
