"""Tests for time-overlap conflict detection."""

from __future__ import annotations

import pytest

from calstore.modules.calendar.conflicts import find_conflicts, intervals_overlap


class TestIntervalsOverlap:
    """Tests for the half-open interval overlap test."""

    def test_overlapping(self) -> None:
        assert intervals_overlap("14:00", "15:00", "14:30", "15:30") is True

    def test_symmetric(self) -> None:
        assert intervals_overlap("14:30", "15:30", "14:00", "15:00") is True

    def test_touching_does_not_overlap(self) -> None:
        """An event ending exactly when another starts is no conflict."""
        assert intervals_overlap("14:00", "15:00", "15:00", "16:00") is False
        assert intervals_overlap("15:00", "16:00", "14:00", "15:00") is False

    def test_containment(self) -> None:
        assert intervals_overlap("09:00", "17:00", "12:00", "13:00") is True

    def test_gap(self) -> None:
        assert intervals_overlap("09:00", "10:00", "11:00", "12:00") is False


class TestFindConflicts:
    """Tests for scanning candidate rows."""

    def test_returns_overlapping_ids(self, make_event) -> None:
        event = make_event(time="14:00", end_time="15:00")
        candidates = [
            ("a", "14:30", "15:30"),
            ("b", "15:00", "16:00"),
            ("c", "13:00", "14:01"),
        ]
        assert find_conflicts(event, candidates) == ["a", "c"]

    def test_untimed_event_never_conflicts(self, make_event) -> None:
        event = make_event(time=None, end_time=None)
        assert find_conflicts(event, [("a", "00:00", "23:59")]) == []

    @pytest.mark.parametrize("start,end", [(None, "15:00"), ("14:00", None)])
    def test_untimed_candidates_ignored(self, make_event, start, end) -> None:
        event = make_event()
        assert find_conflicts(event, [("a", start, end)]) == []

    def test_own_id_ignored(self, make_event) -> None:
        event = make_event()
        assert find_conflicts(event, [(event.id, "14:00", "15:00")]) == []
