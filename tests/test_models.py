"""
Tests for voicetasks domain models.
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from voicetasks.models import (
    AIResponse,
    Priority,
    ResponseMetadata,
    Task,
    TaskDraft,
    TaskStatus,
    TimeEntry,
)


class TestTaskModel:
    """Tests for Task."""

    def test_defaults(self):
        task = Task(title="Buy groceries")

        assert task.id is not None
        assert task.priority == Priority.MEDIUM
        assert task.status == TaskStatus.PENDING
        assert task.time_entries == []
        assert task.is_active_timer is False

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            Task(title="  ")

    def test_tags_deduplicated_in_order(self):
        task = Task(title="Tagged", tags=["b", "a", "b", " ", "a "])
        assert task.tags == ["b", "a"]

    def test_status_from_wire_value(self):
        assert Task(title="Work", status="in-progress").status == TaskStatus.IN_PROGRESS

    def test_overdue(self):
        now = datetime(2024, 3, 13, 10, 0)
        late = Task(title="Late", due_date=now - timedelta(minutes=1))

        assert late.is_overdue(now) is True
        assert late.model_copy(update={"status": TaskStatus.COMPLETED}).is_overdue(now) is False
        assert Task(title="Undated").is_overdue(now) is False

    def test_priority_weight(self):
        assert [p.weight for p in Priority] == [1, 2, 3, 4]


class TestTimeEntry:
    """Tests for TimeEntry."""

    def test_close_rounds_minutes(self):
        start = datetime(2024, 3, 13, 9, 0)
        entry = TimeEntry.close(start, start + timedelta(minutes=24, seconds=40))
        assert entry.duration == 25

    def test_end_before_start_rejected(self):
        start = datetime(2024, 3, 13, 9, 0)
        with pytest.raises(ValidationError):
            TimeEntry(start_time=start, end_time=start - timedelta(minutes=1))

    def test_frozen(self):
        start = datetime(2024, 3, 13, 9, 0)
        entry = TimeEntry.close(start, start)
        with pytest.raises(ValidationError):
            entry.duration = 10


class TestDraftAndResponse:
    """Tests for TaskDraft and AIResponse."""

    def test_draft_allows_empty_title(self):
        draft = TaskDraft()
        assert draft.title == ""
        assert draft.id is None

    def test_degraded(self):
        assert AIResponse(message="ok").degraded is False
        assert AIResponse(message="no", metadata=ResponseMetadata(error="timeout")).degraded is True
