"""GitHub gist adapter — implements DocumentPort over the GitHub REST API.

The schedule lives in one file of a gist. Reloads send the last ETag so an
unchanged gist answers 304 and the in-memory store is kept as-is. Every
request carries a bounded timeout; timeouts surface as
StoreUnavailableError and any other failure as SyncError.
"""

from __future__ import annotations

import json
import logging

import httpx

from schedbot.adapters.file_lock import FileLock
from schedbot.core.errors import StoreUnavailableError, SyncError

logger = logging.getLogger(__name__)

_GIST_DESCRIPTION = "stream schedule"


class GistDocumentStore:
    """GitHub gist implementation of DocumentPort."""

    def __init__(
        self,
        gist_id: str | None = None,
        user: str | None = None,
        token: str | None = None,
        filename: str | None = None,
        api_url: str | None = None,
        lock_path: str | None = None,
        timeout: float | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        from schedbot.config import settings

        self._gist_id = gist_id or settings.SCHED_GIST_ID
        self._auth = (user or settings.GIST_USER, token or settings.GIST_TOKEN)
        self._filename = filename or settings.SCHEDULE_FILENAME
        self._api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self._timeout = timeout or settings.REMOTE_TIMEOUT_SECONDS
        self._lock = FileLock(
            lock_path or settings.LOCK_PATH,
            lock_timeout or settings.LOCK_TIMEOUT_SECONDS,
        )
        self._etag: str | None = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_url,
            auth=self._auth,
            timeout=self._timeout,
            headers={"Accept": "application/vnd.github+json"},
        )

    async def reload(self) -> list | None:
        headers = {"If-None-Match": self._etag} if self._etag else {}

        try:
            async with self._client() as client:
                resp = await client.get(f"/gists/{self._gist_id}", headers=headers)
                if resp.status_code == 304:
                    logger.info("Schedule gist not modified")
                    return None
                resp.raise_for_status()
                content = await self._file_content(client, resp.json())
        except httpx.TimeoutException as exc:
            raise StoreUnavailableError(f"Gist request timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise SyncError(f"Gist request failed with HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SyncError(f"Gist request failed: {exc}") from exc

        try:
            records = json.loads(content)
        except ValueError as exc:
            raise SyncError(f"{self._filename} is not valid JSON: {exc}") from exc

        if not isinstance(records, list):
            raise SyncError(f"{self._filename} is not a JSON array")

        self._etag = resp.headers.get("ETag")
        logger.info("Schedule gist reloaded: %d records", len(records))
        return records

    async def _file_content(self, client: httpx.AsyncClient, gist: object) -> str:
        files = gist.get("files") if isinstance(gist, dict) else None
        if not isinstance(files, dict):
            raise SyncError(f"Gist {self._gist_id} response has no file listing")

        file = files.get(self._filename)
        if not isinstance(file, dict):
            raise SyncError(f"Gist {self._gist_id} has no {self._filename}")

        # the API truncates large files; the full text is behind raw_url
        if file.get("truncated"):
            raw_url = file.get("raw_url")
            if not raw_url:
                raise SyncError(f"{self._filename} is truncated and has no raw_url")
            raw = await client.get(raw_url)
            raw.raise_for_status()
            return raw.text

        return file.get("content") or ""

    async def upload(self, records: list[dict]) -> None:
        payload = {
            "description": _GIST_DESCRIPTION,
            "files": {
                self._filename: {"content": json.dumps(records, indent=4, ensure_ascii=False)},
            },
        }

        try:
            async with self._client() as client:
                resp = await client.patch(f"/gists/{self._gist_id}", json=payload)
                resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise StoreUnavailableError(f"Gist upload timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise SyncError(f"Gist upload failed with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise SyncError(f"Gist upload failed: {exc}") from exc

        self._etag = resp.headers.get("ETag")
        logger.info("Schedule gist uploaded: %d records", len(records))

    async def lock(self) -> None:
        await self._lock.acquire()

    async def unlock(self) -> None:
        await self._lock.release()

    async def close(self) -> None:
        await self._lock.release()
