"""Time-overlap conflict detection between events on the same day."""

from __future__ import annotations

from typing import Iterable, Optional

from calstore.modules.calendar.models import CalendarEvent

# (id, time, end_time) as read from a stored row.
Candidate = tuple[str, Optional[str], Optional[str]]


def intervals_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open ``HH:MM`` intervals overlap; touching ends do not count."""
    return start_a < end_b and end_a > start_b


def find_conflicts(event: CalendarEvent, candidates: Iterable[Candidate]) -> list[str]:
    """Ids of candidates whose time window overlaps ``event``.

    Untimed (all-day) events never conflict. Candidates lacking either time,
    or sharing the event's own id, are ignored.
    """
    if not event.is_timed:
        return []

    conflicts: list[str] = []
    for other_id, start, end in candidates:
        if other_id == event.id or start is None or end is None:
            continue
        if intervals_overlap(event.time, event.end_time, start, end):
            conflicts.append(other_id)
    return conflicts
