"""Document store factory — creates the right adapter based on config."""

from __future__ import annotations

from schedbot.config import settings
from schedbot.ports.document_port import DocumentPort


def create_document_store() -> DocumentPort:
    """Return the document adapter matching DOCUMENT_PROVIDER setting."""
    provider = settings.DOCUMENT_PROVIDER.lower()

    if provider == "gist":
        from schedbot.adapters.gist_store import GistDocumentStore

        return GistDocumentStore()

    if provider == "file":
        from schedbot.adapters.file_store import FileDocumentStore

        return FileDocumentStore()

    raise ValueError(f"Unknown DOCUMENT_PROVIDER: {provider!r}")
