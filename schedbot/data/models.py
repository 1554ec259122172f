"""
Stream Schedule Bot — Data Models.

A schedule entry is either a one-off stream (repeat == 0) anchored at
``start``, or a weekly recurrence whose ``repeat`` bitmask marks the days
(bit 0 = Monday ... bit 6 = Sunday) it happens on. All instants are aware
UTC datetimes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_TITLE = "Untitled Stream"

DAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
DAYS_IN_WEEK = len(DAY_NAMES)

ALL_DAYS = 0x7F
WEEKDAYS = 0x1F
WEEKENDS = 0x60


def day_bit(moment: datetime) -> int:
    """Return the repeat bit for the UTC weekday of ``moment``."""
    return 1 << moment.weekday()


@dataclass
class ScheduleEntry:
    """One schedule belonging to an owner."""

    start: datetime
    end: datetime
    title: str = DEFAULT_TITLE
    repeat: int = 0               # 7-bit day mask, 0 = single occurrence

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_recurring(self) -> bool:
        return self.repeat != 0


@dataclass(frozen=True)
class OffsetEntry:
    """An occurrence within the current rolling week.

    Derived from the store and never persisted; ``offset`` is measured in
    seconds from Monday 00:00 UTC of the week the index was built for.
    """

    offset: int
    owner: str
    entry: ScheduleEntry


@dataclass(frozen=True)
class NextOccurrence:
    """The nearest upcoming occurrence across every owner."""

    owner: str
    entry: ScheduleEntry
    at: datetime
    seconds_until: int
