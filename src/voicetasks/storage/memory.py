"""In-process adapter for tests and ephemeral sessions."""

from __future__ import annotations

from typing import Optional

from voicetasks.storage.base import DocumentStore


class MemoryStore(DocumentStore):
    """Keeps documents in a dict. Goes through the same JSON path as SQLStore."""

    def __init__(self):
        self.documents: dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self.documents.get(key)

    def _write(self, key: str, document: str) -> None:
        self.documents[key] = document
