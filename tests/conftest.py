"""Shared test fixtures and configuration.

Sets up fake environment variables so schedbot.config doesn't sys.exit(),
and provides common fixtures like a fixed clock and an in-memory document
store.
"""

import os

# Patch env vars BEFORE any schedbot imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DOCUMENT_PROVIDER", "gist")
os.environ.setdefault("SCHED_GIST_ID", "fake-gist-id")
os.environ.setdefault("GIST_USER", "fake-user")
os.environ.setdefault("GIST_TOKEN", "fake-gist-token")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("SCHEDULE_URL", "https://schedule.example.org")

import copy
from datetime import datetime, timedelta, timezone

import pytest

# Wednesday; the rolling week started Monday 2026-10-19 00:00 UTC
NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)
WEEK_START = datetime(2026, 10, 19, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeDocumentStore:
    """In-memory DocumentPort that records every call made to it."""

    def __init__(self, records: list | None = None) -> None:
        self.records = records if records is not None else []
        self.modified = True
        self.reload_error: Exception | None = None
        self.upload_error: Exception | None = None
        self.calls: list[str] = []
        self.uploads: list[list[dict]] = []
        self.locked = False

    def write(self, records: list) -> None:
        """Simulate another writer replacing the remote document."""
        self.records = copy.deepcopy(records)
        self.modified = True

    async def reload(self):
        self.calls.append("reload")
        if self.reload_error is not None:
            raise self.reload_error
        if not self.modified:
            return None
        self.modified = False
        return copy.deepcopy(self.records)

    async def upload(self, records):
        self.calls.append("upload")
        if self.upload_error is not None:
            raise self.upload_error
        self.records = copy.deepcopy(records)
        self.uploads.append(copy.deepcopy(records))

    async def lock(self):
        self.calls.append("lock")
        self.locked = True

    async def unlock(self):
        self.calls.append("unlock")
        self.locked = False

    async def close(self):
        self.calls.append("close")


def make_record(user="alice", start="2026-10-21T20:00:00Z", end="2026-10-21T22:00:00Z",
                title="Dev stream", repeat=5):
    return {"user": user, "start": start, "end": end, "title": title, "repeat": repeat}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def document():
    return FakeDocumentStore([make_record()])


@pytest.fixture
def engine(document, clock):
    """A ScheduleEngine over the fake document (not started yet)."""
    from schedbot.core.engine import ScheduleEngine
    return ScheduleEngine(document, clock=clock, schedule_url="https://schedule.example.org")
