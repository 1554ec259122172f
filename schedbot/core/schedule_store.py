"""
Stream Schedule Bot — Schedule Store.

In-memory mapping from owner name to an ordered list of schedule entries.
An entry's display ID is its position in the owner's list, so IDs shift
when an earlier entry is deleted. Owners whose list becomes empty are
removed.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, timezone
from typing import Iterator

from schedbot.core.errors import UserInputError
from schedbot.core.recurrence import DaySpec, TimeSpec, rotate_mask
from schedbot.data.models import ALL_DAYS, DEFAULT_TITLE, ScheduleEntry, day_bit

logger = logging.getLogger(__name__)


def normalize_owner(name: str) -> str:
    return name.strip().lstrip("#").lower()


def _shift_mask(mask: int, days: int) -> int:
    """Move every day of ``mask`` by ``days`` (negative = earlier)."""
    step = 1 if days > 0 else -1
    for _ in range(abs(days) % 7):
        mask = rotate_mask(mask, step)
    return mask


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Read-only view of one entry handed to iteration visitors."""

    owner: str
    sched_id: int
    entry: ScheduleEntry


@dataclass(frozen=True)
class IterDirective:
    """What an iteration visitor wants done with the entry it just saw.

    ``update`` replaces the entry's fields, ``delete`` removes it, and
    ``stop`` ends the traversal after this entry.
    """

    update: ScheduleEntry | None = None
    delete: bool = False
    stop: bool = False


class ScheduleStore:
    """Owner -> ordered list of ScheduleEntry, in insertion order."""

    def __init__(self) -> None:
        self._owners: dict[str, list[ScheduleEntry]] = {}

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._owners.values())

    def __contains__(self, owner: str) -> bool:
        return normalize_owner(owner) in self._owners

    def owners(self) -> list[str]:
        return list(self._owners)

    def entries(self, owner: str) -> list[ScheduleEntry]:
        """Return the owner's entries (empty list for an unknown owner)."""
        return list(self._owners.get(normalize_owner(owner), []))

    def items(self) -> Iterator[tuple[str, ScheduleEntry]]:
        for owner, entries in self._owners.items():
            for entry in entries:
                yield owner, entry

    def copy(self) -> ScheduleStore:
        clone = ScheduleStore()
        clone._owners = copy.deepcopy(self._owners)
        return clone

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, owner: str, entry: ScheduleEntry) -> int:
        """Append ``entry`` for ``owner``; returns its display ID."""
        entries = self._owners.setdefault(normalize_owner(owner), [])
        entries.append(entry)
        return len(entries) - 1

    def get(self, owner: str, sched_id: int) -> ScheduleEntry:
        key = normalize_owner(owner)
        entries = self._owners.get(key)
        if entries is None:
            raise UserInputError(f"Couldn't find any schedules for {key}.")
        if sched_id < 0 or sched_id >= len(entries):
            raise UserInputError(
                f"{key} has {len(entries)} schedules, there is no schedule #{sched_id}."
            )
        return entries[sched_id]

    def edit(
        self,
        owner: str,
        sched_id: int,
        day: DaySpec | None = None,
        time_spec: TimeSpec | None = None,
        title: str | None = None,
    ) -> ScheduleEntry:
        """Change the supplied fields of an entry, leaving the rest untouched."""
        entry = self.get(owner, sched_id)

        if day is not None:
            if day.mask:
                entry.repeat = day.mask
            duration = entry.duration
            start = datetime.combine(day.reference_date, entry.start.timetz())
            entry.start = start.replace(second=0, microsecond=0, tzinfo=timezone.utc)
            entry.end = entry.start + duration

        if time_spec is not None:
            if time_spec.explicit_end:
                duration = timedelta(minutes=time_spec.duration_minutes)
            else:
                duration = entry.duration
            # the new time is wall-clock in its own timezone, so it lands on
            # the entry's date as seen from that timezone
            if day is not None:
                local_date = day.reference_date
            else:
                local_date = (entry.start + timedelta(minutes=time_spec.utc_offset)).date()
            midnight = datetime.combine(local_date, time(), tzinfo=timezone.utc)
            new_start = midnight + timedelta(minutes=time_spec.start_minute)
            entry.repeat = _shift_mask(entry.repeat, (new_start.date() - entry.start.date()).days)
            entry.start = new_start
            entry.end = entry.start + duration

        if title:
            entry.title = title

        logger.info(
            "Edited schedule %s#%d: %s %s [%x]",
            normalize_owner(owner), sched_id, entry.title,
            entry.start.isoformat(), entry.repeat,
        )
        return entry

    def delete(self, owner: str, sched_id: int) -> bool:
        """Remove an entry; returns True when the owner itself was removed."""
        self.get(owner, sched_id)
        key = normalize_owner(owner)
        entries = self._owners[key]
        del entries[sched_id]
        if not entries:
            del self._owners[key]
            return True
        return False

    def merge_or_add(
        self,
        owner: str,
        start: datetime,
        end: datetime,
        repeat: int = 0,
        title: str | None = None,
    ) -> int:
        """Fold an occurrence into a matching recurring entry, or append one.

        A match has the same title (case-insensitive), the same duration and
        the same UTC hour/minute, and already recurs. The day bits OR-ed in
        are ``repeat``, or the weekday of ``start`` when ``repeat`` is 0.
        Returns the display ID of the merged or new entry.
        """
        key = normalize_owner(owner)
        title = title or DEFAULT_TITLE
        wanted_bits = (repeat & ALL_DAYS) or day_bit(start)

        for sched_id, entry in enumerate(self._owners.get(key, [])):
            if (
                entry.repeat
                and entry.title.casefold() == title.casefold()
                and entry.duration == end - start
                and (entry.start.hour, entry.start.minute) == (start.hour, start.minute)
            ):
                entry.repeat |= wanted_bits
                logger.info("Merged schedule into %s#%d [%x]", key, sched_id, entry.repeat)
                return sched_id

        entry = ScheduleEntry(start=start, end=end, title=title, repeat=repeat & ALL_DAYS)
        return self.add(key, entry)

    # ------------------------------------------------------------------
    # Cursor-style iteration
    # ------------------------------------------------------------------

    def snapshots(self, owner_filter: str | None = None) -> Iterator[ScheduleSnapshot]:
        """Yield copies of every entry (optionally for one owner only)."""
        if owner_filter is not None:
            key = normalize_owner(owner_filter)
            owners = [key] if key in self._owners else []
        else:
            owners = list(self._owners)

        for owner in owners:
            for sched_id, entry in enumerate(self._owners[owner]):
                yield ScheduleSnapshot(owner=owner, sched_id=sched_id, entry=replace(entry))

    def apply(self, directives: list[tuple[ScheduleSnapshot, IterDirective]]) -> bool:
        """Apply collected directives; returns True if anything changed.

        Updates land first, then deletions run from the highest ID down so
        earlier positions stay valid.
        """
        changed = False
        deletions: list[tuple[str, int]] = []

        for snapshot, directive in directives:
            if directive.update is not None:
                update = directive.update
                if update.end < update.start:
                    raise UserInputError("A schedule cannot end before it starts.")
                target = self._owners[snapshot.owner][snapshot.sched_id]
                target.start = update.start
                target.end = update.end
                target.title = update.title or DEFAULT_TITLE
                target.repeat = update.repeat & ALL_DAYS
                changed = True
            if directive.delete:
                deletions.append((snapshot.owner, snapshot.sched_id))

        for owner, sched_id in sorted(deletions, key=lambda d: d[1], reverse=True):
            self.delete(owner, sched_id)
            changed = True

        return changed
