"""Data models for calendar events and their nested rules."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from calstore.modules.calendar.validation import (
    sanitize_input,
    validate_date,
    validate_hex_color,
    validate_time,
)


class Priority(StrEnum):
    """Event priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def level(self) -> int:
        """Numeric rank, 0 (low) to 3 (urgent)."""
        return _PRIORITY_LEVELS[self]

    @property
    def emoji(self) -> str:
        return _PRIORITY_EMOJI[self]


_PRIORITY_LEVELS = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}

_PRIORITY_EMOJI = {
    Priority.LOW: "🟢",
    Priority.MEDIUM: "🟡",
    Priority.HIGH: "🟠",
    Priority.URGENT: "🔴",
}


class Category(StrEnum):
    """Event category, each with a default display color."""

    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    SOCIAL = "social"
    FINANCE = "finance"
    EDUCATION = "education"
    OTHER = "other"

    @property
    def color(self) -> str:
        return _CATEGORY_COLORS[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


_CATEGORY_COLORS = {
    Category.WORK: "#3B82F6",
    Category.PERSONAL: "#10B981",
    Category.HEALTH: "#EF4444",
    Category.SOCIAL: "#8B5CF6",
    Category.FINANCE: "#F59E0B",
    Category.EDUCATION: "#6366F1",
    Category.OTHER: "#6B7280",
}


class EventStatus(StrEnum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


class RecurrenceFrequency(StrEnum):
    """How a recurring event repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


class LocationType(StrEnum):
    PHYSICAL = "physical"
    VIRTUAL = "virtual"


# ── Stored-text parsing ──────────────────────────────────────────────
# Stored enum text that does not match a variant maps to the documented
# default instead of failing the whole row.


def parse_priority(value: Optional[str]) -> Priority:
    """Parse stored priority text; unknown text maps to ``medium``."""
    try:
        return Priority((value or "").strip().lower())
    except ValueError:
        return Priority.MEDIUM


def parse_category(value: Optional[str]) -> Category:
    """Parse stored category text; unknown text maps to ``other``."""
    try:
        return Category((value or "").strip().lower())
    except ValueError:
        return Category.OTHER


def parse_status(value: Optional[str]) -> EventStatus:
    """Parse stored status text; unknown text maps to ``confirmed``."""
    try:
        return EventStatus((value or "").strip().lower())
    except ValueError:
        return EventStatus.CONFIRMED


def parse_visibility(value: Optional[str]) -> Visibility:
    """Parse stored visibility text; unknown text maps to ``private``."""
    try:
        return Visibility((value or "").strip().lower())
    except ValueError:
        return Visibility.PRIVATE


def parse_frequency(value: Optional[str]) -> RecurrenceFrequency:
    """Parse stored frequency text; unknown text maps to ``none``."""
    try:
        return RecurrenceFrequency((value or "").strip().lower())
    except ValueError:
        return RecurrenceFrequency.NONE


def parse_location_type(value: Optional[str]) -> LocationType:
    """Parse stored location type text; unknown text maps to ``physical``."""
    try:
        return LocationType((value or "").strip().lower())
    except ValueError:
        return LocationType.PHYSICAL


class WireModel(BaseModel):
    """Base for models whose wire form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecurrenceConfig(WireModel):
    """A repeat rule. Occurrences are derived from it, never stored."""

    frequency: RecurrenceFrequency = RecurrenceFrequency.NONE
    interval: int = Field(default=1, ge=1)
    days_of_week: list[int] = Field(default_factory=list)  # 0 = Sunday
    end_date: Optional[str] = None
    occurrences: Optional[int] = Field(default=None, ge=0)
    except_dates: list[str] = Field(default_factory=list)

    @field_validator("frequency", mode="before")
    @classmethod
    def _parse_frequency(cls, value: Any) -> Any:
        return parse_frequency(value) if isinstance(value, str) else value

    @field_validator("days_of_week")
    @classmethod
    def _check_weekdays(cls, value: list[int]) -> list[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"Weekday out of range 0-6: {day}")
        return value

    @field_validator("end_date")
    @classmethod
    def _check_end_date(cls, value: Optional[str]) -> Optional[str]:
        return validate_date(value) if value is not None else None

    @field_validator("except_dates")
    @classmethod
    def _check_except_dates(cls, value: list[str]) -> list[str]:
        return [validate_date(d) for d in value]


class ReminderConfig(WireModel):
    """When the notification collaborator should fire reminders."""

    minutes_before: int = Field(default=15, ge=0)
    repeat_minutes: Optional[int] = Field(default=None, ge=1)
    max_reminders: int = Field(default=3, ge=0)


class Coordinates(WireModel):
    lat: float
    lng: float


class Location(WireModel):
    """Where an event takes place."""

    location_type: LocationType = LocationType.PHYSICAL
    address: str = ""
    coordinates: Optional[Coordinates] = None

    @field_validator("location_type", mode="before")
    @classmethod
    def _parse_location_type(cls, value: Any) -> Any:
        return parse_location_type(value) if isinstance(value, str) else value


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class CalendarEvent(WireModel):
    """One calendar entry, either a one-off event or the base of a series."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)
    date: str
    time: Optional[str] = None
    end_time: Optional[str] = None
    event: str
    notes: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    category: Category = Category.OTHER
    color: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    status: EventStatus = EventStatus.CONFIRMED
    visibility: Visibility = Visibility.PRIVATE
    recurring: Optional[RecurrenceConfig] = None
    reminder: Optional[ReminderConfig] = None
    location: Optional[Location] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: dt.datetime) -> dt.datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return validate_date(value)

    @field_validator("time", "end_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        return validate_time(value) if value is not None else None

    @field_validator("event")
    @classmethod
    def _check_title(cls, value: str) -> str:
        value = sanitize_input(value)
        if not value:
            raise ValueError("Event title cannot be empty")
        return value

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: Optional[str]) -> Optional[str]:
        return validate_hex_color(value) if value is not None else None

    @model_validator(mode="after")
    def _check_same_day_window(self) -> CalendarEvent:
        if self.time is not None and self.end_time is not None and self.end_time < self.time:
            raise ValueError(
                f"End time {self.end_time} is before start time {self.time}; "
                "events cannot cross midnight"
            )
        return self

    @property
    def effective_color(self) -> str:
        """Explicit color override, or the category default."""
        return self.color or self.category.color

    @property
    def is_timed(self) -> bool:
        """Whether both start and end times are set."""
        return self.time is not None and self.end_time is not None

    @property
    def is_recurring(self) -> bool:
        return self.recurring is not None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
