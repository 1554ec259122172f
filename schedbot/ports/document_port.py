"""Document port — abstract interface for the shared remote schedule document.

The engine depends on this protocol, never on a specific remote store.
"""

from __future__ import annotations

from typing import Protocol


class DocumentPort(Protocol):
    """Reload/upload/lock capability over the remote schedule document.

    ``reload`` returns None when the document has not changed since the
    last successful reload, or the list of raw records otherwise. Failures
    raise SyncError (StoreUnavailableError on timeouts). ``lock`` is a
    coarse writer lock shared by every process that uploads the document.
    """

    async def reload(self) -> list | None: ...

    async def upload(self, records: list[dict]) -> None: ...

    async def lock(self) -> None: ...

    async def unlock(self) -> None: ...

    async def close(self) -> None: ...
