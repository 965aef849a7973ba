"""Calendar storage: event model, recurrence expansion, conflicts and persistence."""

from calstore.modules.calendar.errors import (
    ConnectionFailed,
    MigrationFailed,
    NotFound,
    QueryFailed,
    StorageError,
    TransactionFailed,
    UnknownError,
)
from calstore.modules.calendar.models import (
    CalendarEvent,
    Category,
    EventStatus,
    Location,
    Priority,
    RecurrenceConfig,
    RecurrenceFrequency,
    ReminderConfig,
    Visibility,
)
from calstore.modules.calendar.recurrence import generate_occurrences
from calstore.modules.calendar.repository import CalendarRepository

__all__ = [
    "CalendarEvent",
    "CalendarRepository",
    "Category",
    "ConnectionFailed",
    "EventStatus",
    "Location",
    "MigrationFailed",
    "NotFound",
    "Priority",
    "QueryFailed",
    "RecurrenceConfig",
    "RecurrenceFrequency",
    "ReminderConfig",
    "StorageError",
    "TransactionFailed",
    "UnknownError",
    "Visibility",
    "generate_occurrences",
]
