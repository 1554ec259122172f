"""
Stream Schedule Bot — Weekly Offset Index.

Flattens every schedule into one sorted timeline of this week's
occurrences, measured in seconds from Monday 00:00 UTC. Answering "what's
next" is then a linear scan instead of per-query calendar math; the index
is rebuilt whenever the store changes and once the week rolls over.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

from schedbot.data.models import DAYS_IN_WEEK, NextOccurrence, OffsetEntry

if TYPE_CHECKING:
    from schedbot.core.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)
ONE_OFF_GRACE = timedelta(hours=12)


def week_start_for(now: datetime) -> datetime:
    """Return the most recent Monday 00:00 UTC at or before ``now``."""
    now = now.astimezone(timezone.utc)
    monday = now.date() - timedelta(days=now.weekday())
    return datetime.combine(monday, time(), tzinfo=timezone.utc)


class OffsetIndex:
    """Sorted this-week occurrences of every schedule."""

    def __init__(self) -> None:
        self._offsets: list[OffsetEntry] = []
        self.week_start: datetime | None = None
        self.expiry: datetime | None = None

    def __len__(self) -> int:
        return len(self._offsets)

    @property
    def offsets(self) -> list[OffsetEntry]:
        return list(self._offsets)

    def is_stale(self, now: datetime) -> bool:
        return self.expiry is None or now >= self.expiry

    def rebuild(self, store: ScheduleStore, now: datetime) -> None:
        week_start = week_start_for(now)
        since_week_start = now - week_start
        offsets: list[OffsetEntry] = []

        for owner, entry in store.items():
            if not entry.repeat:
                relative = entry.start - week_start
                # one-offs stay visible for a while after they started
                if since_week_start - relative < ONE_OFF_GRACE:
                    offsets.append(
                        OffsetEntry(int(relative.total_seconds()), owner, entry)
                    )
                continue

            time_of_day = entry.start.astimezone(timezone.utc).timetz()
            for day in range(DAYS_IN_WEEK):
                if not entry.repeat & (1 << day):
                    continue
                occurrence = datetime.combine(
                    week_start.date() + timedelta(days=day), time_of_day,
                )
                offsets.append(
                    OffsetEntry(int((occurrence - week_start).total_seconds()), owner, entry)
                )

        offsets.sort(key=lambda o: o.offset)
        self._offsets = offsets
        self.week_start = week_start
        self.expiry = week_start + WEEK
        logger.debug("Offset index rebuilt: %d occurrences, expires %s", len(offsets), self.expiry)

    def next_occurrence(self, now: datetime) -> NextOccurrence | None:
        """Return the nearest occurrence strictly after ``now``.

        Recurring entries also occur again next week, so the first recurring
        occurrence plus seven days competes with whatever is left of this
        week (including one-offs further out).
        """
        week_start = week_start_for(now)
        candidates: list[tuple[datetime, OffsetEntry]] = []

        for item in self._offsets:
            at = week_start + timedelta(seconds=item.offset)
            if at > now:
                candidates.append((at, item))
                break

        for item in self._offsets:
            if item.entry.repeat:
                candidates.append((week_start + timedelta(seconds=item.offset) + WEEK, item))
                break

        if not candidates:
            return None
        at, item = min(candidates, key=lambda c: c[0])
        return self._occurrence(item, at, now)

    @staticmethod
    def _occurrence(item: OffsetEntry, at: datetime, now: datetime) -> NextOccurrence:
        return NextOccurrence(
            owner=item.owner,
            entry=item.entry,
            at=at,
            seconds_until=int((at - now).total_seconds()),
        )
