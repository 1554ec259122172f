"""
Stream Schedule Bot — Remote document codec.

The remote document is a JSON array of records:

    {
        "user": "somechannel",
        "start": "2026-03-14T20:00:00Z",
        "end": "2026-03-14T22:00:00Z",
        "title": "Handmade Hero",
        "repeat": 31
    }

Loading validates each record on its own: a malformed record is skipped
with a warning instead of aborting the whole reload.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, StrictInt, StrictStr, ValidationError, field_validator, model_validator

from schedbot.core.errors import DataError
from schedbot.core.schedule_store import ScheduleStore
from schedbot.data.models import ALL_DAYS, ScheduleEntry

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(raw: str) -> datetime:
    return datetime.strptime(raw, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class ScheduleRecord(BaseModel):
    """One record of the persisted schedule document."""

    user: StrictStr
    start: datetime
    end: datetime
    title: StrictStr
    repeat: StrictInt

    @field_validator("user")
    @classmethod
    def user_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("user is empty")
        return v.strip().lower()

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_utc(cls, v: object) -> datetime:
        if not isinstance(v, str):
            raise ValueError("timestamp must be a string")
        return parse_timestamp(v)

    @field_validator("repeat")
    @classmethod
    def seven_bits(cls, v: int) -> int:
        return v & ALL_DAYS

    @model_validator(mode="after")
    def end_after_start(self) -> ScheduleRecord:
        if self.end < self.start:
            raise ValueError("end is before start")
        return self

    def to_entry(self) -> ScheduleEntry:
        return ScheduleEntry(
            start=self.start,
            end=self.end,
            title=self.title,
            repeat=self.repeat,
        )


def parse_record(raw: object) -> ScheduleRecord:
    """Validate one raw record; raises DataError when it is malformed."""
    if not isinstance(raw, dict):
        raise DataError(f"record is not an object: {raw!r}")
    try:
        return ScheduleRecord.model_validate(raw)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "record" for err in exc.errors())
        raise DataError(f"invalid field(s): {fields}") from exc


def load_store(records: list) -> ScheduleStore:
    """Build a fresh ScheduleStore from document records."""
    store = ScheduleStore()
    skipped = 0

    for i, raw in enumerate(records):
        try:
            record = parse_record(raw)
        except DataError as exc:
            skipped += 1
            logger.warning("Skipping schedule record %d: %s", i, exc)
            continue

        entry = record.to_entry()
        store.add(record.user, entry)
        logger.debug(
            "Loaded schedule: [%s] [%s] [%dmin] [%x] [%s]",
            record.user, entry.start.strftime("%H:%M"),
            entry.duration.total_seconds() // 60, entry.repeat, entry.title,
        )

    logger.info("Loaded %d schedules (%d skipped)", len(store), skipped)
    return store


def dump_store(store: ScheduleStore) -> list[dict]:
    """Serialize a ScheduleStore into document records, in store order."""
    return [
        {
            "user": owner,
            "start": format_timestamp(entry.start),
            "end": format_timestamp(entry.end),
            "title": entry.title,
            "repeat": entry.repeat & ALL_DAYS,
        }
        for owner, entry in store.items()
    ]
