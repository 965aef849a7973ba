"""Async database engine setup shared by the calendar storage layer."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import MetaData, event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from calstore.config import database_url_for
from calstore.logging_config import get_logger

logger = get_logger(__name__)

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """SQLAlchemy declarative base with naming conventions."""

    metadata = MetaData(naming_convention=convention)


def create_engine_for(
    path: str | Path,
    cache_size_kib: int = 64000,
    echo: bool = False,
) -> AsyncEngine:
    """Create an engine that holds exactly one connection to the store.

    ``StaticPool`` hands the same aiosqlite connection to every checkout, so
    callers must serialize access themselves. The storage tuning pragmas run
    once each time that connection is opened.
    """
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(
        database_url_for(path),
        echo=echo,
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _apply_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute(f"PRAGMA cache_size=-{int(cache_size_kib)}")
        finally:
            cursor.close()
        logger.debug("sqlite_pragmas_applied", path=str(path), cache_size_kib=cache_size_kib)

    return engine
