"""Expansion of recurrence rules into concrete occurrence dates.

Everything here is pure: the same rule and anchor always give the same
dates, and no state is kept between calls.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from calstore.modules.calendar.models import RecurrenceConfig, RecurrenceFrequency

# Bounds rules with neither an end date nor an occurrence cap to about a year.
DEFAULT_OCCURRENCE_LIMIT = 365


def weekday_index(day: dt.date) -> int:
    """Weekday number with Sunday as 0."""
    return (day.weekday() + 1) % 7


def _add_days(day: dt.date, days: int) -> Optional[dt.date]:
    try:
        return day + dt.timedelta(days=days)
    except OverflowError:
        return None


def _next_weekly(rule: RecurrenceConfig, current: dt.date) -> Optional[dt.date]:
    if rule.days_of_week:
        wanted = set(rule.days_of_week)
        candidate = current
        for _ in range(7 * rule.interval):
            candidate = _add_days(candidate, 1)
            if candidate is None:
                return None
            if weekday_index(candidate) in wanted:
                return candidate
    return _add_days(current, 7 * rule.interval)


def _next_monthly(rule: RecurrenceConfig, current: dt.date) -> Optional[dt.date]:
    months = current.month - 1 + rule.interval
    year = current.year + months // 12
    month = months % 12 + 1
    try:
        return current.replace(year=year, month=month)
    except ValueError:
        # Day-of-month missing in the target month (or year out of range).
        return _add_days(current, 30 * rule.interval)


def _next_yearly(rule: RecurrenceConfig, current: dt.date) -> Optional[dt.date]:
    try:
        return current.replace(year=current.year + rule.interval)
    except ValueError:
        return _add_days(current, 365 * rule.interval)


def next_occurrence(rule: RecurrenceConfig, current: dt.date) -> Optional[dt.date]:
    """Candidate date following ``current``, or None when no step is possible."""
    freq = rule.frequency
    if freq == RecurrenceFrequency.DAILY:
        return _add_days(current, rule.interval)
    if freq == RecurrenceFrequency.WEEKLY:
        return _next_weekly(rule, current)
    if freq == RecurrenceFrequency.BIWEEKLY:
        return _add_days(current, 14 * rule.interval)
    if freq == RecurrenceFrequency.MONTHLY:
        return _next_monthly(rule, current)
    if freq == RecurrenceFrequency.YEARLY:
        return _next_yearly(rule, current)
    # CUSTOM and NONE have no stepping rule.
    return None


def generate_occurrences(
    rule: RecurrenceConfig,
    anchor_date: str,
    limit: Optional[int] = None,
) -> list[str]:
    """Expand ``rule`` from ``anchor_date`` into ordered ISO dates.

    Args:
        rule: The recurrence rule.
        anchor_date: ISO date of the base event; the first candidate.
        limit: Maximum number of dates to emit. Defaults to
            ``DEFAULT_OCCURRENCE_LIMIT``. The rule's own ``occurrences`` cap
            applies as well and the smaller of the two wins.

    Returns:
        Dates in ascending order. A ``none`` rule always yields just the
        anchor, ignoring ``limit`` and every other field.
    """
    if rule.frequency == RecurrenceFrequency.NONE:
        return [anchor_date]

    cap = DEFAULT_OCCURRENCE_LIMIT if limit is None else limit
    if rule.occurrences is not None:
        cap = min(cap, rule.occurrences)

    end = dt.date.fromisoformat(rule.end_date) if rule.end_date else None
    skipped = set(rule.except_dates)

    dates: list[str] = []
    current: Optional[dt.date] = dt.date.fromisoformat(anchor_date)
    while current is not None and len(dates) < cap:
        if end is not None and current > end:
            break
        iso = current.isoformat()
        if iso not in skipped:
            dates.append(iso)
        current = next_occurrence(rule, current)
    return dates
