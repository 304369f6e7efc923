"""Persistence adapters."""

from voicetasks.storage.base import (
    DocumentStore,
    PersistenceAdapter,
    StorageKey,
    clear_all,
    export_data,
    import_data,
    load_memory,
    load_preferences,
    save_memory,
    save_preferences,
)
from voicetasks.storage.memory import MemoryStore
from voicetasks.storage.sql import SQLStore

__all__ = [
    "DocumentStore",
    "MemoryStore",
    "PersistenceAdapter",
    "SQLStore",
    "StorageKey",
    "clear_all",
    "export_data",
    "import_data",
    "load_memory",
    "load_preferences",
    "save_memory",
    "save_preferences",
]
