"""Local file adapter — implements DocumentPort over a JSON file on disk.

Useful when several bot processes share a host (or a network mount) and
for running without GitHub credentials. The file's mtime and size act as
its version: an unchanged file reloads as "not modified".
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path

from schedbot.adapters.file_lock import FileLock
from schedbot.core.errors import SyncError

logger = logging.getLogger(__name__)

_MISSING = (-1, -1)


class FileDocumentStore:
    """JSON file implementation of DocumentPort."""

    def __init__(
        self,
        path: str | None = None,
        lock_path: str | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        from schedbot.config import settings

        self._path = Path(path or settings.SCHEDULE_FILE_PATH)
        self._lock = FileLock(
            lock_path or settings.LOCK_PATH,
            lock_timeout or settings.LOCK_TIMEOUT_SECONDS,
        )
        self._version: tuple[int, int] | None = None

    def _current_version(self) -> tuple[int, int]:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return _MISSING
        return st.st_mtime_ns, st.st_size

    def _read(self) -> tuple[tuple[int, int], str]:
        version = self._current_version()
        if version == _MISSING:
            return version, "[]"
        return version, self._path.read_text(encoding="utf-8")

    def _write(self, text: str) -> tuple[int, int]:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, self._path)
        return self._current_version()

    async def reload(self) -> list | None:
        try:
            version, text = await asyncio.to_thread(self._read)
        except OSError as exc:
            raise SyncError(f"Couldn't read {self._path}: {exc}") from exc

        if version == self._version:
            logger.info("Schedule file not modified")
            return None

        try:
            records = json.loads(text)
        except ValueError as exc:
            raise SyncError(f"{self._path} is not valid JSON: {exc}") from exc
        if not isinstance(records, list):
            raise SyncError(f"{self._path} is not a JSON array")

        self._version = version
        logger.info("Schedule file reloaded: %d records", len(records))
        return records

    async def upload(self, records: list[dict]) -> None:
        text = json.dumps(records, indent=4, ensure_ascii=False)
        try:
            self._version = await asyncio.to_thread(self._write, text)
        except OSError as exc:
            raise SyncError(f"Couldn't write {self._path}: {exc}") from exc
        logger.info("Schedule file written: %d records", len(records))

    async def lock(self) -> None:
        await self._lock.acquire()

    async def unlock(self) -> None:
        await self._lock.release()

    async def close(self) -> None:
        await self._lock.release()
