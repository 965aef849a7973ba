"""calstore: calendar event storage with recurrence expansion and conflict detection."""

__version__ = "0.1.0"
