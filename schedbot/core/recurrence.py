"""
Stream Schedule Bot — Recurrence Parser.

Pure functions that turn human-entered day and time text into structured
values: a reference date plus a weekly day mask, and a start/end
minute-of-day in UTC.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from schedbot.data.models import ALL_DAYS, DAY_NAMES, DAYS_IN_WEEK, WEEKDAYS, WEEKENDS
from schedbot.integrations.tz_abbr import lookup_offset

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
DEFAULT_DURATION_MINUTES = 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?:-(\d{1,2}):(\d{2}))?([A-Za-z]*)$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DaySpec:
    """Result of parsing a day argument."""

    reference_date: date
    mask: int


@dataclass(frozen=True)
class TimeSpec:
    """Result of parsing a time argument.

    Minutes are UTC minute-of-day and may fall outside [0, 1440) after a
    timezone conversion; ``day_shift`` is -1 or +1 when the start moved
    into the previous or next UTC day. ``utc_offset`` is the offset of the
    timezone the time was written in, in minutes east of UTC.
    """

    start_minute: int
    end_minute: int
    explicit_end: bool
    day_shift: int = 0
    utc_offset: int = 0

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute


def rotate_mask(mask: int, direction: int) -> int:
    """Rotate a 7-bit day mask by one day with wraparound.

    direction -1 moves every day back one (Mon -> Sun), +1 moves every day
    forward one (Sun -> Mon), 0 leaves the mask unchanged.
    """
    mask &= ALL_DAYS
    if direction < 0:
        return (((mask & 1) << DAYS_IN_WEEK) | mask) >> 1 & ALL_DAYS
    if direction > 0:
        mask <<= 1
        return (mask | (mask >> DAYS_IN_WEEK)) & ALL_DAYS
    return mask


def _keyword_mask(keyword: str, today: date) -> int | None:
    keywords = {
        "today": 0,
        "daily": ALL_DAYS,
        "weekdays": WEEKDAYS,
        "weekends": WEEKENDS,
        "weekly": 1 << today.weekday(),
    }
    return keywords.get(keyword)


def _day_list_mask(text: str) -> int | None:
    mask = 0
    found = False
    for token in text.split(","):
        token = token.strip()
        if token in DAY_NAMES:
            mask |= 1 << DAY_NAMES.index(token)
            found = True
    return mask if found else None


def _align_to_mask(reference: date, mask: int) -> date:
    """Advance ``reference`` 0-6 days to the nearest day whose bit is set."""
    if not mask:
        return reference
    for step in range(DAYS_IN_WEEK):
        candidate = reference + timedelta(days=step)
        if mask & (1 << candidate.weekday()):
            return candidate
    return reference


def parse_day_spec(text: str, now: datetime) -> DaySpec | None:
    """Parse a day argument relative to ``now`` (UTC).

    Accepts ``today``, ``daily``, ``weekdays``, ``weekends``, ``weekly``,
    comma separated 3-letter day lists like ``mon,wed,fri``, or an explicit
    ``YYYY-MM-DD`` date. Returns None if the text is none of these.
    """
    if not text:
        return None

    lowered = text.strip().lower()
    today = now.date()

    mask = _keyword_mask(lowered, today)
    if mask is None:
        mask = _day_list_mask(lowered)

    if mask is not None:
        return DaySpec(reference_date=_align_to_mask(today, mask), mask=mask)

    if _DATE_RE.match(lowered):
        try:
            explicit = datetime.strptime(lowered, "%Y-%m-%d").date()
        except ValueError:
            return None
        return DaySpec(reference_date=explicit, mask=0)

    return None


def parse_time_spec(text: str) -> TimeSpec | None:
    """Parse ``HH:MM[-HH:MM][TZ]`` into UTC minutes of the day.

    Without an end time the duration defaults to one hour. An end earlier
    than the start means the stream runs past midnight. An unknown timezone
    abbreviation fails the parse rather than being read as UTC.
    """
    if not text:
        return None

    match = _TIME_RE.match(text.strip())
    if match is None:
        return None

    start_h, start_m, end_h, end_m, tz_name = match.groups()
    pieces = [int(start_h), int(start_m)]
    explicit_end = end_h is not None
    if explicit_end:
        pieces += [int(end_h), int(end_m)]

    for hour, minute in zip(pieces[::2], pieces[1::2]):
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return None

    start = pieces[0] * 60 + pieces[1]
    if explicit_end:
        end = pieces[2] * 60 + pieces[3]
    else:
        end = start + DEFAULT_DURATION_MINUTES

    if end < start:
        end += MINUTES_PER_DAY

    offset = 0
    if tz_name:
        offset = lookup_offset(tz_name)
        if offset is None:
            return None
        start -= offset
        end -= offset

    day_shift = 0
    if start < 0:
        day_shift = -1
    elif start >= MINUTES_PER_DAY:
        day_shift = 1

    return TimeSpec(
        start_minute=start,
        end_minute=end,
        explicit_end=explicit_end,
        day_shift=day_shift,
        utc_offset=offset,
    )


def describe_repeat(mask: int, start: datetime) -> str:
    """Render a repeat mask the way schedules are listed to users."""
    if mask == ALL_DAYS:
        return "Daily"
    if mask == WEEKDAYS:
        return "Weekdays"
    if mask == WEEKENDS:
        return "Weekends"
    if mask == 0:
        return start.strftime("%Y-%m-%d")
    return ",".join(name for i, name in enumerate(DAY_NAMES) if mask & (1 << i))
