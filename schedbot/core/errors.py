"""Error types shared by the schedule engine and its adapters."""

from __future__ import annotations


class ScheduleError(Exception):
    """Base class for every schedule failure reported to a caller."""


class UserInputError(ScheduleError):
    """Unparsable day/time, bad or out-of-range ID, or unknown owner.

    No state is mutated when this is raised.
    """


class SyncError(ScheduleError):
    """The remote document store could not be reloaded or updated."""


class StoreUnavailableError(SyncError):
    """The remote store or its lock did not answer within the timeout."""


class DataError(ScheduleError):
    """A record of the remote document is malformed."""
