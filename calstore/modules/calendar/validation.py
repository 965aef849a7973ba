"""Field validators shared by the calendar models.

The patterns are compiled once at import and never mutated.
"""

from __future__ import annotations

import datetime as dt
import re

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^(?:[01]?[0-9]|2[0-3]):[0-5][0-9]$")
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


def sanitize_input(value: str) -> str:
    """Strip surrounding whitespace from free text."""
    return value.strip()


def validate_date(value: str) -> str:
    """Return ``value`` if it is a real ``YYYY-MM-DD`` calendar date."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError(f"Invalid date format: {value}")
    try:
        dt.date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid calendar date: {value}") from None
    return value


def validate_time(value: str) -> str:
    """Return ``value`` as zero-padded ``HH:MM``.

    ``9:05`` is accepted and normalized to ``09:05`` so that times compare
    correctly as strings.
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid time format: {value}")
    hours, minutes = value.strip().split(":")
    return f"{int(hours):02d}:{minutes}"


def validate_hex_color(value: str) -> str:
    if not isinstance(value, str) or not HEX_COLOR_PATTERN.match(value):
        raise ValueError(f"Invalid hex color: {value}")
    return value
