"""
Stream Schedule Bot — Command argument splitting.

Chat commands arrive as whitespace separated words:

    add:    [#owner] [days] <HH:MM>[-HH:MM][TZ] [Title ...]
    edit:   [#owner] <id> [days] [HH:MM[-HH:MM][TZ]] [Title ...]
    delete: [#owner] <id>
    show:   [#owner]

The day and time words are told apart from the title by trying the
recurrence grammar on them, so a title can never start with something that
parses as a day or time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from schedbot.core.errors import UserInputError
from schedbot.core.recurrence import parse_day_spec, parse_time_spec
from schedbot.core.schedule_store import normalize_owner
from schedbot.data.models import DAY_NAMES

ADD_USAGE = (
    "usage: /schedadd [#owner] [days] <HH:MM>[-HH:MM][TZ] [Title]. "
    "'days' can be a list like 'mon,tue,fri', strings like 'daily', "
    "'weekends' etc, or a date like '2016-03-14'."
)
EDIT_USAGE = (
    "usage: /schedit [#owner] <id> [days] [HH:MM[-HH:MM][TZ]] [Title]. "
    "Missing fields will keep their previous value."
)
DELETE_USAGE = "usage: /scheddel [#owner] <id>"

_ID_RE = re.compile(r"^(\d+)([a-zA-Z]{3})?$")


@dataclass(frozen=True)
class ScheduleArgs:
    """Split command arguments; specs are kept as the raw words."""

    owner: str
    sched_id: int | None = None
    day_spec: str | None = None
    time_spec: str | None = None
    title: str | None = None


def split_owner(words: list[str], fallback: str) -> tuple[str, list[str]]:
    """Take a leading ``#owner`` word, otherwise use ``fallback``."""
    if words and words[0].startswith("#") and len(words[0]) > 1:
        return normalize_owner(words[0]), words[1:]
    return normalize_owner(fallback), list(words)


def parse_id(word: str | None) -> int:
    """Parse a display ID. A day suffix (``3mon``) addresses a single day,
    which isn't supported."""
    match = _ID_RE.match(word or "")
    if match is None:
        raise UserInputError("Couldn't parse ID.")
    if match.group(2):
        if match.group(2).lower() in DAY_NAMES:
            raise UserInputError("Sorry, editing or removing individual days isn't supported.")
        raise UserInputError("Couldn't parse ID.")
    return int(match.group(1))


def _title(words: list[str]) -> str | None:
    return " ".join(words) if words else None


def parse_add_args(words: list[str], fallback_owner: str, now: datetime | None = None) -> ScheduleArgs:
    now = now or datetime.now(timezone.utc)
    owner, rest = split_owner(words, fallback_owner)
    if not rest:
        raise UserInputError(ADD_USAGE)

    day_spec = None
    if parse_day_spec(rest[0], now) is not None:
        day_spec, rest = rest[0], rest[1:]

    if not rest or parse_time_spec(rest[0]) is None:
        raise UserInputError("Unable to parse time.")

    return ScheduleArgs(
        owner=owner,
        day_spec=day_spec,
        time_spec=rest[0],
        title=_title(rest[1:]),
    )


def parse_edit_args(words: list[str], fallback_owner: str, now: datetime | None = None) -> ScheduleArgs:
    now = now or datetime.now(timezone.utc)
    owner, rest = split_owner(words, fallback_owner)
    if not rest:
        raise UserInputError(EDIT_USAGE)

    sched_id = parse_id(rest[0])
    rest = rest[1:]
    if not rest:
        raise UserInputError("Nothing to edit...")

    day_spec = None
    if parse_day_spec(rest[0], now) is not None:
        day_spec, rest = rest[0], rest[1:]

    time_spec = None
    if rest and parse_time_spec(rest[0]) is not None:
        time_spec, rest = rest[0], rest[1:]

    return ScheduleArgs(
        owner=owner,
        sched_id=sched_id,
        day_spec=day_spec,
        time_spec=time_spec,
        title=_title(rest),
    )


def parse_delete_args(words: list[str], fallback_owner: str) -> ScheduleArgs:
    owner, rest = split_owner(words, fallback_owner)
    if not rest:
        raise UserInputError(DELETE_USAGE)
    return ScheduleArgs(owner=owner, sched_id=parse_id(rest[0]))


def parse_show_args(words: list[str], fallback_owner: str) -> str:
    owner, _ = split_owner(words, fallback_owner)
    return owner
