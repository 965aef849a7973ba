"""Table definitions and schema setup for calendar storage.

Nested objects (recurrence, reminder, location, tags, metadata) are stored
as JSON text columns on the single ``events`` table rather than in child
tables.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, Connection, Index, Integer, Text, func, inspect, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from calstore.database import Base
from calstore.logging_config import get_logger
from calstore.modules.calendar.errors import MigrationFailed

logger = get_logger(__name__)

SCHEMA_VERSION = 1

# Columns missing from events tables created by the first layout.
ADDITIVE_COLUMNS = ("recurring", "reminder", "location")


class EventRecord(Base):
    """One stored base event. Recurring series are a single row."""

    __tablename__ = "events"
    # Index names match stores created before the nested columns existed.
    __table_args__ = (
        Index("idx_events_date", "date"),
        Index("idx_events_category", "category"),
        Index("idx_events_priority", "priority"),
    )

    id = Column(Text, primary_key=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    time = Column(Text, nullable=True)  # HH:MM
    end_time = Column(Text, nullable=True)
    event = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    priority = Column(Text, nullable=False, server_default="medium")
    category = Column(Text, nullable=False, server_default="other")
    color = Column(Text, nullable=True)
    tags = Column(Text, nullable=True)  # JSON array
    status = Column(Text, nullable=False, server_default="confirmed")
    visibility = Column(Text, nullable=False, server_default="private")
    recurring = Column(Text, nullable=True)  # JSON RecurrenceConfig
    reminder = Column(Text, nullable=True)  # JSON ReminderConfig
    location = Column(Text, nullable=True)  # JSON Location
    metadata_ = Column("metadata", Text, nullable=False, server_default="{}")

    def __repr__(self) -> str:
        return f"<EventRecord(id={self.id}, date={self.date}, event={self.event})>"


class SchemaMigration(Base):
    """Applied schema versions."""

    __tablename__ = "schema_migrations"

    version = Column(Integer, primary_key=True, autoincrement=False)
    applied_at = Column(Text, nullable=False, server_default=text("CURRENT_TIMESTAMP"))


def _create_and_upgrade(sync_conn: Connection) -> list[str]:
    """Create missing tables and indexes, then add any missing nested columns."""
    tables = [EventRecord.__table__, SchemaMigration.__table__]
    Base.metadata.create_all(sync_conn, tables=tables)

    for index in EventRecord.__table__.indexes:
        index.create(sync_conn, checkfirst=True)

    existing = {col["name"] for col in inspect(sync_conn).get_columns(EventRecord.__tablename__)}
    added: list[str] = []
    for name in ADDITIVE_COLUMNS:
        if name not in existing:
            sync_conn.execute(text(f"ALTER TABLE {EventRecord.__tablename__} ADD COLUMN {name} TEXT"))
            added.append(name)
    return added


async def get_schema_version(conn: AsyncConnection) -> Optional[int]:
    """Highest applied schema version, or None on an un-migrated store."""
    has_table = await conn.run_sync(
        lambda sync_conn: inspect(sync_conn).has_table(SchemaMigration.__tablename__)
    )
    if not has_table:
        return None
    result = await conn.execute(select(func.max(SchemaMigration.version)))
    return result.scalar_one_or_none()


async def ensure_schema(conn: AsyncConnection) -> int:
    """Idempotently bring the store up to ``SCHEMA_VERSION``.

    Raises:
        MigrationFailed: if any DDL statement fails.
    """
    try:
        added = await conn.run_sync(_create_and_upgrade)
        await conn.execute(
            sqlite_insert(SchemaMigration)
            .values(version=SCHEMA_VERSION, applied_at=func.current_timestamp())
            .on_conflict_do_nothing(index_elements=["version"])
        )
        version = await get_schema_version(conn)
    except SQLAlchemyError as exc:
        logger.error("calendar_schema_failed", error=str(exc))
        raise MigrationFailed(str(exc)) from exc

    if added:
        logger.info("calendar_schema_upgraded", added_columns=added)
    logger.info("calendar_schema_ready", version=version)
    return version or SCHEMA_VERSION
