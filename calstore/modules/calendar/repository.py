"""Persistence gateway for calendar events.

The repository owns a single SQLite connection (through a ``StaticPool``
engine) and serializes every operation with one ``asyncio.Lock``. aiosqlite
runs the blocking sqlite calls on its own thread, so a slow disk never stalls
the event loop. Recurring events are stored once as a rule and expanded into
materialized instances at query time.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Iterator, Optional
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import and_, delete, func, or_, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from calstore.config import get_settings
from calstore.database import create_engine_for
from calstore.logging_config import get_logger
from calstore.modules.calendar.conflicts import find_conflicts
from calstore.modules.calendar.errors import (
    ConnectionFailed,
    MigrationFailed,
    QueryFailed,
    UnknownError,
)
from calstore.modules.calendar.models import (
    CalendarEvent,
    Category,
    EventStatus,
    Location,
    Priority,
    RecurrenceConfig,
    ReminderConfig,
    parse_category,
    parse_priority,
    parse_status,
    parse_visibility,
)
from calstore.modules.calendar.recurrence import generate_occurrences
from calstore.modules.calendar.schema import EventRecord, ensure_schema, get_schema_version
from calstore.modules.calendar.validation import validate_date

logger = get_logger(__name__)

events_table = EventRecord.__table__

_ADAPTERS: dict[str, TypeAdapter] = {
    "tags": TypeAdapter(list[str]),
    "recurring": TypeAdapter(RecurrenceConfig),
    "reminder": TypeAdapter(ReminderConfig),
    "location": TypeAdapter(Location),
    "metadata": TypeAdapter(dict[str, Any]),
}


def _display_order(event: CalendarEvent) -> tuple[str, str]:
    return event.date, event.time or "00:00"


class CalendarRepository:
    """CRUD, range queries and conflict checks over the ``events`` table."""

    def __init__(
        self,
        db_path: Optional[str | Path] = None,
        *,
        recurrence_limit: Optional[int] = None,
        strict_decoding: Optional[bool] = None,
        cache_size_kib: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._db_path = str(db_path) if db_path is not None else settings.database_path
        self._recurrence_limit = settings.recurrence_limit if recurrence_limit is None else recurrence_limit
        self._strict = settings.strict_decoding if strict_decoding is None else strict_decoding

        try:
            self._engine = create_engine_for(
                self._db_path,
                cache_size_kib=settings.sqlite_cache_size_kib if cache_size_kib is None else cache_size_kib,
            )
        except OSError as exc:
            raise ConnectionFailed(f"{self._db_path}: {exc}") from exc

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._lock = asyncio.Lock()
        self._initialized = False
        self._schema_version: Optional[int] = None

    # ── Lifecycle ────────────────────────────────────────────────────

    @classmethod
    async def open(cls, db_path: Optional[str | Path] = None, **kwargs: Any) -> CalendarRepository:
        """Construct a repository and bring its schema up to date."""
        repo = cls(db_path, **kwargs)
        await repo.initialize()
        return repo

    async def initialize(self) -> None:
        """Open the connection and ensure the schema exists.

        Raises:
            ConnectionFailed: the store cannot be opened or tuned.
            MigrationFailed: schema setup failed.
        """
        async with self._lock:
            if self._initialized:
                return

            try:
                async with self._engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                logger.error("calendar_connection_failed", path=self._db_path, error=str(exc))
                raise ConnectionFailed(str(exc)) from exc

            try:
                async with self._engine.begin() as conn:
                    self._schema_version = await ensure_schema(conn)
            except SQLAlchemyError as exc:
                logger.error("calendar_schema_failed", path=self._db_path, error=str(exc))
                raise MigrationFailed(str(exc)) from exc

            self._initialized = True
            logger.info("calendar_repository_ready", path=self._db_path, version=self._schema_version)

    async def close(self) -> None:
        """Dispose of the underlying connection."""
        async with self._lock:
            await self._engine.dispose()
            self._initialized = False
        logger.info("calendar_repository_closed", path=self._db_path)

    async def __aenter__(self) -> CalendarRepository:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """Run one operation against the shared connection, holding the lock."""
        if not self._initialized:
            await self.initialize()
        async with self._lock:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except SQLAlchemyError as exc:
                    await session.rollback()
                    logger.error("calendar_query_failed", operation=operation, error=str(exc))
                    raise QueryFailed(f"{operation}: {exc}") from exc

    # ── Encoding ─────────────────────────────────────────────────────

    @staticmethod
    def _to_db(event: CalendarEvent) -> dict[str, Any]:
        """Map an event onto column values; absent nested objects become NULL."""
        try:
            tags = json.dumps(event.tags)
            metadata = json.dumps(event.metadata)
        except (TypeError, ValueError) as exc:
            raise UnknownError(f"event {event.id} is not serializable: {exc}") from exc

        def nested(value: Any) -> Optional[str]:
            return value.model_dump_json(by_alias=True) if value is not None else None

        return {
            "id": event.id,
            "created_at": event.created_at.isoformat(),
            "updated_at": event.updated_at.isoformat(),
            "date": event.date,
            "time": event.time,
            "end_time": event.end_time,
            "event": event.event,
            "notes": event.notes,
            "priority": event.priority.value,
            "category": event.category.value,
            "color": event.color,
            "tags": tags,
            "status": event.status.value,
            "visibility": event.visibility.value,
            "recurring": nested(event.recurring),
            "reminder": nested(event.reminder),
            "location": nested(event.location),
            "metadata": metadata,
        }

    def _fallback(self, event_id: str, column: str, error: Exception) -> None:
        """Record a lenient decode, or raise when strict decoding is on."""
        if self._strict:
            raise UnknownError(f"event {event_id}: column {column!r} failed to decode: {error}") from error
        logger.warning(
            "calendar_event_column_decode_fallback",
            event_id=event_id,
            column=column,
            error=str(error),
        )

    def _decode_column(self, raw: Optional[str], column: str, event_id: str) -> Any:
        if raw is None:
            return None
        try:
            return _ADAPTERS[column].validate_json(raw)
        except ValidationError as exc:
            self._fallback(event_id, column, exc)
            return None

    def _decode_timestamp(self, raw: Optional[str], column: str, event_id: str) -> dt.datetime:
        try:
            return dt.datetime.fromisoformat(raw)
        except (TypeError, ValueError) as exc:
            self._fallback(event_id, column, exc)
            return dt.datetime.now(dt.UTC)

    def _from_db(self, record: EventRecord) -> CalendarEvent:
        event_id = record.id
        data = {
            "id": event_id,
            "created_at": self._decode_timestamp(record.created_at, "created_at", event_id),
            "updated_at": self._decode_timestamp(record.updated_at, "updated_at", event_id),
            "date": record.date,
            "time": record.time,
            "end_time": record.end_time,
            "event": record.event,
            "notes": record.notes,
            "priority": parse_priority(record.priority),
            "category": parse_category(record.category),
            "color": record.color,
            "tags": self._decode_column(record.tags, "tags", event_id) or [],
            "status": parse_status(record.status),
            "visibility": parse_visibility(record.visibility),
            "recurring": self._decode_column(record.recurring, "recurring", event_id),
            "reminder": self._decode_column(record.reminder, "reminder", event_id),
            "location": self._decode_column(record.location, "location", event_id),
            "metadata": self._decode_column(record.metadata_, "metadata", event_id) or {},
        }
        try:
            return CalendarEvent.model_validate(data)
        except ValidationError as exc:
            logger.error("calendar_event_decode_failed", event_id=event_id, error=str(exc))
            raise UnknownError(f"event {event_id} failed to decode: {exc}") from exc

    # ── Queries ──────────────────────────────────────────────────────

    async def get_by_id(self, event_id: str) -> Optional[CalendarEvent]:
        """Point lookup; None when no row has this id."""
        async with self._session("get_by_id") as session:
            result = await session.execute(select(EventRecord).where(EventRecord.id == event_id))
            record = result.scalar_one_or_none()
            return self._from_db(record) if record is not None else None

    async def get_by_date(self, date: str) -> list[CalendarEvent]:
        """Base rows on ``date`` ordered by start time, untimed rows first."""
        async with self._session("get_by_date") as session:
            result = await session.execute(
                select(EventRecord).where(EventRecord.date == date).order_by(EventRecord.time.asc())
            )
            return [self._from_db(record) for record in result.scalars().all()]

    async def get_today_events(self) -> list[CalendarEvent]:
        """Base rows on the local current date."""
        return await self.get_by_date(dt.date.today().isoformat())

    async def get_by_date_range(self, start_date: str, end_date: str) -> list[CalendarEvent]:
        """Events in ``[start_date, end_date]`` with recurring series expanded.

        Every occurrence of a recurring base row that lands in the range
        becomes a materialized instance: a copy of the base event with the
        occurrence date and a fresh id that is not stable across calls.

        Raises:
            ValueError: if either bound is not an ISO date.
        """
        validate_date(start_date)
        validate_date(end_date)

        async with self._session("get_by_date_range") as session:
            result = await session.execute(
                select(EventRecord)
                .where(
                    or_(
                        and_(EventRecord.date >= start_date, EventRecord.date <= end_date),
                        EventRecord.recurring.is_not(None),
                    )
                )
                .order_by(EventRecord.date.asc(), EventRecord.time.asc())
            )
            base_events = [self._from_db(record) for record in result.scalars().all()]

        events: list[CalendarEvent] = []
        for base in base_events:
            if base.recurring is not None:
                events.extend(self._materialize(base, start_date, end_date))
            elif start_date <= base.date <= end_date:
                events.append(base)

        events.sort(key=_display_order)
        logger.debug(
            "calendar_range_queried",
            start=start_date,
            end=end_date,
            base_rows=len(base_events),
            results=len(events),
        )
        return events

    def _materialize(self, base: CalendarEvent, start_date: str, end_date: str) -> Iterator[CalendarEvent]:
        for occurrence in generate_occurrences(base.recurring, base.date, self._recurrence_limit):
            if start_date <= occurrence <= end_date:
                yield base.model_copy(update={"date": occurrence, "id": str(uuid4())}, deep=True)

    async def find_events(
        self,
        category: Optional[Category] = None,
        priority: Optional[Priority] = None,
        status: Optional[EventStatus] = None,
    ) -> list[CalendarEvent]:
        """Base rows matching every given filter, ordered by date and time."""
        stmt = select(EventRecord)
        if category is not None:
            stmt = stmt.where(EventRecord.category == Category(category).value)
        if priority is not None:
            stmt = stmt.where(EventRecord.priority == Priority(priority).value)
        if status is not None:
            stmt = stmt.where(EventRecord.status == EventStatus(status).value)
        stmt = stmt.order_by(EventRecord.date.asc(), EventRecord.time.asc())

        async with self._session("find_events") as session:
            result = await session.execute(stmt)
            return [self._from_db(record) for record in result.scalars().all()]

    async def count(self) -> int:
        """Number of base rows; materialized instances are not counted."""
        async with self._session("count") as session:
            result = await session.execute(select(func.count()).select_from(EventRecord))
            return int(result.scalar_one())

    async def schema_version(self) -> Optional[int]:
        async with self._session("schema_version") as session:
            conn = await session.connection()
            return await get_schema_version(conn)

    # ── Writes ───────────────────────────────────────────────────────

    async def save_event(self, event: CalendarEvent) -> None:
        """Insert ``event`` or overwrite every column of the existing row.

        ``updated_at`` is stamped with the current time on the passed event
        before it is written.
        """
        event.updated_at = dt.datetime.now(dt.UTC)
        row = self._to_db(event)
        columns = {column.name: column for column in events_table.columns}

        stmt = sqlite_insert(events_table).values({columns[name]: value for name, value in row.items()})
        stmt = stmt.on_conflict_do_update(
            index_elements=[columns["id"]],
            set_={column: stmt.excluded[column.key] for column in events_table.columns if column.name != "id"},
        )

        async with self._session("save_event") as session:
            await session.execute(stmt)
        logger.info("calendar_event_saved", event_id=event.id, date=event.date, recurring=event.is_recurring)

    async def delete_event(self, event_id: str) -> bool:
        """Delete a base row (and so its whole series). False if nothing matched."""
        async with self._session("delete_event") as session:
            result = await session.execute(delete(events_table).where(events_table.c.id == event_id))
            deleted = result.rowcount > 0
        logger.info("calendar_event_deleted", event_id=event_id, deleted=deleted)
        return deleted

    # ── Conflicts ────────────────────────────────────────────────────

    async def check_conflicts(self, event: CalendarEvent) -> list[str]:
        """Ids of other timed base rows on the same date overlapping ``event``.

        Advisory only: nothing prevents a conflicting save.
        """
        if not event.is_timed:
            return []

        async with self._session("check_conflicts") as session:
            result = await session.execute(
                select(EventRecord.id, EventRecord.time, EventRecord.end_time).where(
                    EventRecord.date == event.date,
                    EventRecord.id != event.id,
                    EventRecord.time.is_not(None),
                    EventRecord.end_time.is_not(None),
                )
            )
            candidates = [tuple(row) for row in result.all()]

        conflicts = find_conflicts(event, candidates)
        if conflicts:
            logger.info("calendar_conflicts_found", event_id=event.id, date=event.date, conflicts=conflicts)
        return conflicts
