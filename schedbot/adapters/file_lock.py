"""Cross-process writer lock backed by ``flock`` on a shared lock file.

Every bot process that uploads the schedule document points at the same
lock file. Acquisition polls a non-blocking ``flock`` so the event loop is
never blocked, and gives up after a bounded timeout.
"""

from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import time
from pathlib import Path

from schedbot.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.05


class FileLock:
    """Exclusive advisory lock on ``path``."""

    def __init__(self, path: str, timeout: float) -> None:
        self._path = Path(path)
        self._timeout = timeout
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    async def acquire(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        deadline = time.monotonic() + self._timeout

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise StoreUnavailableError(
                        f"Timed out after {self._timeout:g}s waiting for {self._path}"
                    ) from None
                await asyncio.sleep(_POLL_SECONDS)

        self._fd = fd
        logger.debug("Acquired schedule lock %s", self._path)

    async def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("Released schedule lock %s", self._path)
