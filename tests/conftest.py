"""Shared test fixtures and configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio

os.environ.setdefault("CALSTORE_ENV", "test")
os.environ.setdefault("CALSTORE_LOG_LEVEL", "WARNING")
os.environ.setdefault("DATABASE_PATH", ":memory:")

from calstore.config import Settings
from calstore.modules.calendar.models import CalendarEvent
from calstore.modules.calendar.repository import CalendarRepository


@pytest.fixture
def settings() -> Settings:
    """Return test settings."""
    return Settings(
        calstore_env="test",
        calstore_log_level="WARNING",
        database_path=":memory:",
        _env_file=None,
    )


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path for a throwaway on-disk database."""
    return tmp_path / "calendar.db"


@pytest_asyncio.fixture
async def repo(db_path: Path) -> AsyncGenerator[CalendarRepository, None]:
    """Provide an initialized repository backed by a fresh database file."""
    repository = await CalendarRepository.open(db_path)
    yield repository
    await repository.close()


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for timed events on 2026-01-20, 14:00-15:00 by default."""

    def _make(
        title: str = "Test",
        date: str = "2026-01-20",
        time: str | None = "14:00",
        end_time: str | None = "15:00",
        **kwargs,
    ) -> CalendarEvent:
        return CalendarEvent(event=title, date=date, time=time, end_time=end_time, **kwargs)

    return _make
