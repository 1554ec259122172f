"""
Stream Schedule Bot — Schedule Engine.

The single session value every command handler works through. It owns the
in-memory ScheduleStore, the derived OffsetIndex and the remote document
handle, and sequences them:

    mutations:  lock -> reload -> one mutation -> upload -> rebuild index -> unlock
    reads:      reload (no lock) -> answer from the store / index

If the upload fails the store is rolled back to its pre-mutation snapshot,
so it never holds more than the one mutation currently awaiting upload.

Returns plain data — never sends messages directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Callable, TypeVar

from schedbot.core.errors import SyncError, UserInputError
from schedbot.core.offset_index import OffsetIndex
from schedbot.core.recurrence import DaySpec, TimeSpec, parse_day_spec, parse_time_spec, rotate_mask
from schedbot.core.schedule_store import IterDirective, ScheduleSnapshot, ScheduleStore, normalize_owner
from schedbot.data.document import dump_store, load_store
from schedbot.data.models import DEFAULT_TITLE, NextOccurrence, ScheduleEntry

if TYPE_CHECKING:
    from schedbot.ports.document_port import DocumentPort

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]
Visitor = Callable[[ScheduleSnapshot], "IterDirective | None"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass
class ScheduleChange:
    """Outcome of a successful add/edit/delete."""

    owner: str
    sched_id: int
    title: str = ""
    owner_removed: bool = False


class ScheduleEngine:
    """Sync controller and command surface over one schedule document."""

    def __init__(
        self,
        document: DocumentPort,
        clock: Clock | None = None,
        schedule_url: str | None = None,
    ) -> None:
        self._document = document
        self._clock = clock or _utcnow
        self._schedule_url = schedule_url
        self._store = ScheduleStore()
        self._index = OffsetIndex()

    @property
    def store(self) -> ScheduleStore:
        return self._store

    @property
    def index(self) -> OffsetIndex:
        return self._index

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Initial full load; raises SyncError if the document is unreachable."""
        await self._reload()
        self._index.rebuild(self._store, self._clock())
        logger.info("Schedule engine started with %d schedules", len(self._store))

    async def close(self) -> None:
        await self._document.close()
        self._store = ScheduleStore()
        self._index = OffsetIndex()

    # ------------------------------------------------------------------
    # Sync protocol
    # ------------------------------------------------------------------

    async def _reload(self) -> bool:
        """Replace the store from the remote document; False if unchanged."""
        records = await self._document.reload()
        if records is None:
            return False
        self._store = load_store(records)
        self._index.rebuild(self._store, self._clock())
        return True

    async def _refresh_for_read(self) -> None:
        try:
            await self._reload()
        except SyncError as exc:
            logger.warning("Schedule reload failed, serving cached data: %s", exc)

    async def _mutate(
        self,
        action: Callable[[ScheduleStore], T],
        upload_when: Callable[[T], bool] | None = None,
    ) -> T:
        await self._document.lock()
        try:
            try:
                await self._reload()
            except SyncError as exc:
                logger.error("Schedule reload failed, command aborted: %s", exc)
                raise

            snapshot = self._store.copy()
            try:
                result = action(self._store)
                if upload_when is None or upload_when(result):
                    await self._document.upload(dump_store(self._store))
            except SyncError as exc:
                logger.error("Schedule upload failed, rolling back: %s", exc)
                self._store = snapshot
                raise
            except UserInputError:
                self._store = snapshot
                raise
            finally:
                self._index.rebuild(self._store, self._clock())
            return result
        finally:
            await self._document.unlock()

    # ------------------------------------------------------------------
    # Argument parsing
    # ------------------------------------------------------------------

    def _parse_day(self, day_spec: str, now: datetime) -> DaySpec:
        day = parse_day_spec(day_spec, now)
        if day is None:
            raise UserInputError(f"Couldn't parse days '{day_spec}'.")
        return day

    @staticmethod
    def _parse_time(time_spec: str) -> TimeSpec:
        when = parse_time_spec(time_spec)
        if when is None:
            raise UserInputError(f"Couldn't parse time '{time_spec}'.")
        return when

    @staticmethod
    def _owner_key(owner: str) -> str:
        key = normalize_owner(owner or "")
        if not key:
            raise UserInputError("No owner given.")
        return key

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def add(
        self,
        owner: str,
        time_spec: str,
        day_spec: str | None = None,
        title: str | None = None,
    ) -> ScheduleChange:
        """Add a schedule; without days it is a one-off today."""
        key = self._owner_key(owner)
        now = self._clock()
        day = self._parse_day(day_spec, now) if day_spec else DaySpec(now.date(), 0)
        when = self._parse_time(time_spec)

        midnight = datetime.combine(day.reference_date, time(), tzinfo=timezone.utc)
        entry = ScheduleEntry(
            start=midnight + timedelta(minutes=when.start_minute),
            end=midnight + timedelta(minutes=when.end_minute),
            title=title or DEFAULT_TITLE,
            repeat=rotate_mask(day.mask, when.day_shift),
        )

        sched_id = await self._mutate(lambda store: store.add(key, entry))
        logger.info("Added schedule %s#%d '%s'", key, sched_id, entry.title)
        return ScheduleChange(owner=key, sched_id=sched_id, title=entry.title)

    async def edit(
        self,
        owner: str,
        sched_id: int,
        day_spec: str | None = None,
        time_spec: str | None = None,
        title: str | None = None,
    ) -> ScheduleChange:
        """Change only the supplied fields of an existing schedule."""
        key = self._owner_key(owner)
        day = self._parse_day(day_spec, self._clock()) if day_spec else None
        when = self._parse_time(time_spec) if time_spec else None
        if day is None and when is None and not title:
            raise UserInputError("Nothing to edit...")

        entry = await self._mutate(
            lambda store: replace(store.edit(key, sched_id, day, when, title))
        )
        return ScheduleChange(owner=key, sched_id=sched_id, title=entry.title)

    async def delete(self, owner: str, sched_id: int) -> ScheduleChange:
        key = self._owner_key(owner)
        removed = await self._mutate(lambda store: store.delete(key, sched_id))
        logger.info("Deleted schedule %s#%d", key, sched_id)
        return ScheduleChange(owner=key, sched_id=sched_id, owner_removed=removed)

    async def show(self, owner: str) -> list[ScheduleEntry]:
        key = self._owner_key(owner)
        await self._refresh_for_read()
        entries = self._store.entries(key)
        if not entries:
            raise UserInputError(f"No schedules for {key}")
        return [replace(entry) for entry in entries]

    async def next(self) -> NextOccurrence | None:
        """Nearest upcoming occurrence across every owner."""
        await self._refresh_for_read()
        now = self._clock()
        self.tick(now)
        return self._index.next_occurrence(now)

    def link(self) -> str:
        if self._schedule_url is None:
            from schedbot.config import settings

            self._schedule_url = settings.SCHEDULE_URL
        return self._schedule_url

    def tick(self, now: datetime | None = None) -> bool:
        """Rebuild the index once the week it was built for is over."""
        now = now or self._clock()
        if self._index.is_stale(now):
            self._index.rebuild(self._store, now)
            return True
        return False

    # ------------------------------------------------------------------
    # Programmatic interface for in-process collaborators
    # ------------------------------------------------------------------

    async def iterate(self, owner_filter: str | None, visit: Visitor) -> int:
        """Visit every (owner, entry) snapshot, then apply the directives.

        ``visit`` may return an IterDirective to update or delete the entry
        it was shown, and/or stop the traversal. Directives are applied once
        the traversal is over and uploaded if anything changed. Returns the
        number of entries updated or deleted.
        """
        def action(store: ScheduleStore) -> int:
            collected: list[tuple[ScheduleSnapshot, IterDirective]] = []
            for snapshot in store.snapshots(owner_filter):
                directive = visit(snapshot)
                if directive is None:
                    continue
                collected.append((snapshot, directive))
                if directive.stop:
                    break
            store.apply(collected)
            return sum(1 for _, d in collected if d.update is not None or d.delete)

        return await self._mutate(action, upload_when=lambda changed: changed > 0)

    async def schedule_add(
        self,
        owner: str,
        start: datetime | None,
        end: datetime | None,
        repeat: int = 0,
        title: str | None = None,
    ) -> bool:
        """Merge an occurrence into a matching schedule or add a new one.

        Returns False (without touching anything) for invalid arguments.
        """
        if not owner or not normalize_owner(owner) or start is None or end is None:
            logger.warning("schedule_add rejected: missing owner or times")
            return False

        start, end = _as_utc(start), _as_utc(end)
        if start > end:
            logger.warning("schedule_add rejected: start %s is after end %s", start, end)
            return False

        key = normalize_owner(owner)
        await self._mutate(lambda store: store.merge_or_add(key, start, end, repeat, title))
        return True

    async def force_save(self) -> None:
        """Upload the current store unconditionally."""
        await self._document.lock()
        try:
            await self._document.upload(dump_store(self._store))
            self._index.rebuild(self._store, self._clock())
        finally:
            await self._document.unlock()
