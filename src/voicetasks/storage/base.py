"""
Persistence Adapter

Keyed collections of entities, each stored as one JSON document. Backends
only move strings; (de)serialization lives here so every backend shares the
same date handling.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, Sequence, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as SchemaError

from voicetasks.errors import StorageError
from voicetasks.models import (
    Conversation,
    Project,
    Task,
    TaskAnalytics,
    TaskTemplate,
    UserMemory,
    UserPreferences,
)
from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class StorageKey(str, Enum):
    """Collections the adapter knows about."""
    TASKS = "tasks"
    CONVERSATIONS = "conversations"
    PROJECTS = "projects"
    ANALYTICS = "analytics"
    PREFERENCES = "preferences"
    MEMORY = "memory"
    TEMPLATES = "templates"


KEY_MODELS: dict[StorageKey, type[BaseModel]] = {
    StorageKey.TASKS: Task,
    StorageKey.CONVERSATIONS: Conversation,
    StorageKey.PROJECTS: Project,
    StorageKey.ANALYTICS: TaskAnalytics,
    StorageKey.PREFERENCES: UserPreferences,
    StorageKey.MEMORY: UserMemory,
    StorageKey.TEMPLATES: TaskTemplate,
}


class PersistenceAdapter(Protocol):
    """What the core needs from storage."""

    def load(self, key: StorageKey, model: type[M]) -> list[M]:
        ...

    def save(self, key: StorageKey, items: Sequence[BaseModel]) -> bool:
        ...


class DocumentStore(ABC):
    """
    Base for adapters that keep one JSON document per key.

    Subclasses implement raw reads and writes and raise StorageError on
    backend failure. load/save never raise: failures are logged and come
    back as [] or False.
    """

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the stored document, or None if the key was never saved."""

    @abstractmethod
    def _write(self, key: str, document: str) -> None:
        """Replace the stored document."""

    def load(self, key: StorageKey, model: type[M]) -> list[M]:
        try:
            document = self._read(key.value)
        except StorageError as e:
            logger.error("storage_load_failed", key=key.value, error=str(e))
            return []

        if document is None:
            return []

        try:
            return TypeAdapter(list[model]).validate_json(document)
        except SchemaError as e:
            logger.error(
                "storage_document_invalid",
                key=key.value,
                errors=e.error_count(),
            )
            return []

    def save(self, key: StorageKey, items: Sequence[BaseModel]) -> bool:
        document = json.dumps([item.model_dump(mode="json") for item in items])
        try:
            self._write(key.value, document)
        except StorageError as e:
            logger.error("storage_save_failed", key=key.value, error=str(e))
            return False

        logger.debug("storage_saved", key=key.value, count=len(items))
        return True


# =============================================================================
# Helpers over any adapter
# =============================================================================


def load_preferences(storage: PersistenceAdapter) -> UserPreferences:
    """Stored preferences, or the defaults when none were saved."""
    items = storage.load(StorageKey.PREFERENCES, UserPreferences)
    return items[0] if items else UserPreferences()


def save_preferences(storage: PersistenceAdapter, preferences: UserPreferences) -> bool:
    return storage.save(StorageKey.PREFERENCES, [preferences])


def load_memory(storage: PersistenceAdapter) -> UserMemory:
    """Stored user memory, or the defaults when none was saved."""
    items = storage.load(StorageKey.MEMORY, UserMemory)
    return items[0] if items else UserMemory()


def save_memory(storage: PersistenceAdapter, memory: UserMemory) -> bool:
    return storage.save(StorageKey.MEMORY, [memory])


def export_data(storage: PersistenceAdapter, now: Optional[datetime] = None) -> dict[str, Any]:
    """Every collection as JSON-ready data, plus an export timestamp."""
    data: dict[str, Any] = {
        key.value: [item.model_dump(mode="json") for item in storage.load(key, model)]
        for key, model in KEY_MODELS.items()
    }
    data["export_date"] = (now or datetime.now()).isoformat()
    return data


def import_data(storage: PersistenceAdapter, data: dict[str, Any]) -> bool:
    """
    Replace collections present in an export.

    Everything is validated before anything is written, so a bad export
    leaves storage untouched.
    """
    parsed: dict[StorageKey, list[BaseModel]] = {}
    try:
        for key, model in KEY_MODELS.items():
            if data.get(key.value) is not None:
                parsed[key] = TypeAdapter(list[model]).validate_python(data[key.value])
    except SchemaError as e:
        logger.error("import_invalid", errors=e.error_count())
        return False

    ok = True
    for key, items in parsed.items():
        ok = storage.save(key, items) and ok

    logger.info("data_imported", collections=[k.value for k in parsed], ok=ok)
    return ok


def clear_all(storage: PersistenceAdapter) -> bool:
    ok = True
    for key in KEY_MODELS:
        ok = storage.save(key, []) and ok
    logger.info("storage_cleared", ok=ok)
    return ok
