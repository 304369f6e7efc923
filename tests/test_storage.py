"""
Tests for persistence adapters.
"""

from datetime import datetime

import pytest

from voicetasks.errors import StorageError
from voicetasks.models import (
    Conversation,
    Message,
    MessageRole,
    Priority,
    Task,
    TimeEntry,
    UserMemory,
    UserPreferences,
)
from voicetasks.storage import (
    MemoryStore,
    SQLStore,
    StorageKey,
    clear_all,
    export_data,
    import_data,
    load_memory,
    load_preferences,
    save_memory,
    save_preferences,
)


class BrokenStore(MemoryStore):
    """Backend whose every read and write fails."""

    def _read(self, key):
        raise StorageError("disk on fire")

    def _write(self, key, document):
        raise StorageError("disk on fire")


@pytest.fixture(params=["memory", "sql"])
def adapter(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
    else:
        store = SQLStore(f"sqlite:///{tmp_path / 'store.db'}")
        yield store
        store.close()


class TestRoundTrip:
    """Both backends keep ids, timestamps and nested entries."""

    def test_tasks(self, adapter):
        start = datetime(2024, 3, 13, 9, 0)
        task = Task(
            title="Write report",
            priority=Priority.HIGH,
            due_date=datetime(2024, 3, 15, 23, 59, 59),
            time_entries=[TimeEntry.close(start, datetime(2024, 3, 13, 9, 45))],
            total_time_spent=45,
        )

        assert adapter.save(StorageKey.TASKS, [task]) is True
        loaded = adapter.load(StorageKey.TASKS, Task)

        assert loaded == [task]
        assert loaded[0].time_entries[0].duration == 45

    def test_conversations(self, adapter):
        conversation = Conversation(
            title="Planning",
            messages=[Message(role=MessageRole.USER, content="I need to plan")],
        )
        adapter.save(StorageKey.CONVERSATIONS, [conversation])

        loaded = adapter.load(StorageKey.CONVERSATIONS, Conversation)
        assert loaded[0].messages[0].content == "I need to plan"
        assert loaded[0].id == conversation.id

    def test_save_replaces(self, adapter):
        adapter.save(StorageKey.TASKS, [Task(title="A"), Task(title="B")])
        adapter.save(StorageKey.TASKS, [Task(title="C")])

        assert [t.title for t in adapter.load(StorageKey.TASKS, Task)] == ["C"]

    def test_never_saved(self, adapter):
        assert adapter.load(StorageKey.PROJECTS, Task) == []


class TestFailures:
    """Loads and saves degrade instead of raising."""

    def test_invalid_document(self):
        store = MemoryStore()
        store.documents["tasks"] = '[{"title": ""}]'
        assert store.load(StorageKey.TASKS, Task) == []

    def test_malformed_json(self):
        store = MemoryStore()
        store.documents["tasks"] = "not json"
        assert store.load(StorageKey.TASKS, Task) == []

    def test_backend_errors(self):
        store = BrokenStore()
        assert store.load(StorageKey.TASKS, Task) == []
        assert store.save(StorageKey.TASKS, [Task(title="A")]) is False


class TestPreferencesAndMemory:
    """Tests for single-document helpers."""

    def test_defaults_when_missing(self):
        store = MemoryStore()
        assert load_preferences(store) == UserPreferences()
        assert load_memory(store) == UserMemory()

    def test_preferences(self):
        store = MemoryStore()
        preferences = UserPreferences(theme="dark")
        preferences.notification_settings.enabled = True

        save_preferences(store, preferences)
        loaded = load_preferences(store)

        assert loaded.theme == "dark"
        assert loaded.notification_settings.enabled is True

    def test_memory(self):
        store = MemoryStore()
        memory = UserMemory()
        memory.contextual_info.current_projects = ["Website"]

        save_memory(store, memory)

        assert load_memory(store).contextual_info.current_projects == ["Website"]


class TestExportImport:
    """Tests for whole-store export, import and clear."""

    def test_export_import(self):
        source = MemoryStore()
        source.save(StorageKey.TASKS, [Task(title="Carry over")])
        save_preferences(source, UserPreferences(language="de-DE"))

        data = export_data(source, now=datetime(2024, 3, 13, 12, 0))
        assert data["export_date"] == "2024-03-13T12:00:00"
        assert data["tasks"][0]["title"] == "Carry over"

        target = MemoryStore()
        assert import_data(target, data) is True
        assert target.load(StorageKey.TASKS, Task)[0].title == "Carry over"
        assert load_preferences(target).language == "de-DE"

    def test_invalid_import_writes_nothing(self):
        target = MemoryStore()
        target.save(StorageKey.TASKS, [Task(title="Keep")])

        ok = import_data(
            target,
            {
                "projects": [{"name": "Fine"}],
                "tasks": [{"title": ""}],
            },
        )

        assert ok is False
        assert [t.title for t in target.load(StorageKey.TASKS, Task)] == ["Keep"]
        assert "projects" not in target.documents

    def test_import_skips_absent_collections(self):
        target = MemoryStore()
        target.save(StorageKey.TASKS, [Task(title="Keep")])

        import_data(target, {"projects": []})

        assert len(target.load(StorageKey.TASKS, Task)) == 1

    def test_clear_all(self):
        store = MemoryStore()
        store.save(StorageKey.TASKS, [Task(title="A")])

        assert clear_all(store) is True
        assert store.load(StorageKey.TASKS, Task) == []
