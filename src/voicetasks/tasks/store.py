"""
Task Store

CRUD, status side effects and time tracking for tasks. Every mutation is a
load-then-save through the persistence adapter; run one store per session.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from pydantic import ValidationError as SchemaError

from voicetasks.errors import NotFoundError, ValidationError
from voicetasks.models import (
    Priority,
    Task,
    TaskDraft,
    TaskStatus,
    TaskTemplate,
    TimeEntry,
    new_id,
)
from voicetasks.notifications import NotificationService
from voicetasks.storage.base import PersistenceAdapter, StorageKey
from voicetasks.utils.logging import get_logger

if TYPE_CHECKING:
    from voicetasks.analytics.engine import AnalyticsEngine

logger = get_logger(__name__)

# Fields callers may not overwrite through update(); timers and status
# transitions maintain the rest of these
PROTECTED_FIELDS = {
    "id",
    "created_at",
    "updated_at",
    "started_at",
    "completed_at",
    "time_entries",
    "total_time_spent",
    "is_active_timer",
    "current_session_start",
}


class TaskStore:
    """
    Store for tasks and task templates.

    Unknown ids are logged no-ops rather than errors, so bulk operations
    survive stale selections.
    """

    def __init__(
        self,
        storage: PersistenceAdapter,
        analytics: Optional["AnalyticsEngine"] = None,
        clock: Callable[[], datetime] = datetime.now,
        notifications: Optional[NotificationService] = None,
    ):
        """
        Initialize the store.

        Args:
            storage: Persistence adapter
            analytics: Records completions and estimates new tasks
            clock: Source of "now"
            notifications: Completion celebrations
        """
        self.storage = storage
        self.analytics = analytics
        self.clock = clock
        self.notifications = notifications

    def _load(self) -> list[Task]:
        return self.storage.load(StorageKey.TASKS, Task)

    def _save(self, tasks: list[Task]) -> bool:
        return self.storage.save(StorageKey.TASKS, tasks)

    # =========================================================================
    # Task Operations
    # =========================================================================

    def create(self, draft: Optional[TaskDraft] = None, **fields: Any) -> Task:
        """
        Create and persist a task.

        Accepts a TaskDraft, keyword fields, or both (keywords win).

        Raises:
            ValidationError: empty title or invalid field values
        """
        data = draft.model_dump(exclude={"id"}) if draft else {}
        data.update(fields)

        title = str(data.get("title") or "").strip()
        if not title:
            raise ValidationError("title", "must not be empty")
        data["title"] = title

        now = self.clock()
        data.update(
            id=new_id(),
            created_at=now,
            updated_at=now,
            time_entries=[],
            total_time_spent=0,
            is_active_timer=False,
            current_session_start=None,
        )

        try:
            task = Task.model_validate(data)
        except SchemaError as e:
            raise ValidationError(_first_field(e), str(e)) from e

        if task.estimated_minutes is None and self.analytics is not None:
            estimate = self.analytics.estimate_task_time(task)
            task.estimated_minutes = estimate.estimated_minutes

        tasks = self._load()
        tasks.append(task)
        self._save(tasks)

        logger.info(
            "task_created",
            task_id=task.id,
            title=task.title,
            priority=task.priority.value,
            estimated_minutes=task.estimated_minutes,
        )
        return task

    def get(self, task_id: str) -> Optional[Task]:
        """Get a task by ID."""
        return next((t for t in self._load() if t.id == task_id), None)

    def all(self) -> list[Task]:
        return self._load()

    def update(self, task_id: str, **changes: Any) -> Optional[Task]:
        """
        Merge changes into a task.

        A first move into in-progress stamps started_at; a move into
        completed on a started task stamps completed_at and records the
        completion.

        Returns:
            The updated task, or None if the id is unknown

        Raises:
            ValidationError: bad changes (nothing is written)
        """
        self._check_changes(changes)

        tasks = self._load()
        try:
            index = _locate(tasks, task_id)
        except NotFoundError as e:
            logger.warning("task_not_found", task_id=task_id, operation="update", error=str(e))
            return None

        updated, completed = self._apply(tasks[index], changes, self.clock())
        tasks[index] = updated
        self._save(tasks)

        logger.info("task_updated", task_id=task_id, fields=sorted(changes))
        if completed:
            self._on_completed(updated)
        return updated

    def delete(self, task_id: str) -> bool:
        """Delete a task. Its analytics records are kept."""
        tasks = self._load()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            logger.warning("task_not_found", task_id=task_id, operation="delete")
            return False

        self._save(remaining)
        logger.info("task_deleted", task_id=task_id)
        return True

    def complete(self, task_id: str) -> Optional[Task]:
        """Mark a task as completed."""
        return self.update(task_id, status=TaskStatus.COMPLETED)

    def reopen(self, task_id: str) -> Optional[Task]:
        return self.update(task_id, status=TaskStatus.PENDING)

    def bulk_update(self, task_ids: Iterable[str], **changes: Any) -> list[Task]:
        """Apply the same changes to several tasks in one write."""
        self._check_changes(changes)
        wanted = set(task_ids)
        now = self.clock()

        tasks = self._load()
        updated: list[Task] = []
        completed: list[Task] = []
        for i, task in enumerate(tasks):
            if task.id not in wanted:
                continue
            tasks[i], did_complete = self._apply(task, changes, now)
            updated.append(tasks[i])
            if did_complete:
                completed.append(tasks[i])

        missing = wanted - {t.id for t in updated}
        if missing:
            logger.warning("task_not_found", task_ids=sorted(missing), operation="bulk_update")

        if updated:
            self._save(tasks)
            logger.info("tasks_bulk_updated", count=len(updated), fields=sorted(changes))
        for task in completed:
            self._on_completed(task)
        return updated

    def bulk_delete(self, task_ids: Iterable[str]) -> int:
        """Delete several tasks in one write. Returns the number removed."""
        wanted = set(task_ids)
        tasks = self._load()
        remaining = [t for t in tasks if t.id not in wanted]
        removed = len(tasks) - len(remaining)

        if removed:
            self._save(remaining)
        logger.info("tasks_bulk_deleted", requested=len(wanted), removed=removed)
        return removed

    # =========================================================================
    # Timers
    # =========================================================================

    def start_timer(self, task_id: str) -> Optional[Task]:
        """
        Open a work session.

        Starting an already running timer keeps the current session. Timers
        on other tasks are left alone.
        """
        tasks = self._load()
        try:
            index = _locate(tasks, task_id)
        except NotFoundError as e:
            logger.warning("task_not_found", task_id=task_id, operation="start_timer", error=str(e))
            return None

        task = tasks[index]
        if task.is_active_timer:
            logger.debug("timer_already_running", task_id=task_id)
            return task

        now = self.clock()
        tasks[index] = task.model_copy(
            update={"is_active_timer": True, "current_session_start": now, "updated_at": now}
        )
        self._save(tasks)
        logger.info("timer_started", task_id=task_id)
        return tasks[index]

    def stop_timer(self, task_id: str) -> Optional[TimeEntry]:
        """
        Close the running session and commit it as a TimeEntry.

        Returns None when the task is unknown or has no running timer.
        """
        tasks = self._load()
        try:
            index = _locate(tasks, task_id)
        except NotFoundError as e:
            logger.warning("task_not_found", task_id=task_id, operation="stop_timer", error=str(e))
            return None

        task = tasks[index]
        if not task.is_active_timer or task.current_session_start is None:
            logger.debug("timer_not_running", task_id=task_id)
            return None

        now = self.clock()
        entry = TimeEntry.close(task.current_session_start, max(now, task.current_session_start))
        entries = [*task.time_entries, entry]
        tasks[index] = task.model_copy(
            update={
                "time_entries": entries,
                "total_time_spent": sum(e.duration for e in entries),
                "is_active_timer": False,
                "current_session_start": None,
                "updated_at": now,
            }
        )
        self._save(tasks)
        logger.info(
            "timer_stopped",
            task_id=task_id,
            minutes=entry.duration,
            total=tasks[index].total_time_spent,
        )
        return entry

    def active_timers(self) -> list[Task]:
        return [t for t in self._load() if t.is_active_timer]

    # =========================================================================
    # Queries
    # =========================================================================

    def by_status(self, status: TaskStatus | str) -> list[Task]:
        status = TaskStatus(status)
        return [t for t in self._load() if t.status == status]

    def by_project(self, project: Optional[str]) -> list[Task]:
        return [t for t in self._load() if t.project == project]

    def by_priority(self, priority: Priority | str) -> list[Task]:
        priority = Priority(priority)
        return [t for t in self._load() if t.priority == priority]

    def upcoming(self, days: int = 7) -> list[Task]:
        """Tasks due between now and `days` days from now."""
        now = self.clock()
        until = now + timedelta(days=days)
        return [t for t in self._load() if t.due_date and now <= t.due_date <= until]

    def overdue(self) -> list[Task]:
        now = self.clock()
        return [t for t in self._load() if t.is_overdue(now)]

    def search(self, query: str) -> list[Task]:
        """Case-insensitive match on title, description or tags."""
        needle = query.lower().strip()
        return [
            t for t in self._load()
            if needle in t.title.lower()
            or (t.description and needle in t.description.lower())
            or any(needle in tag.lower() for tag in t.tags)
        ]

    def stats(self) -> dict[str, float]:
        tasks = self._load()
        now = self.clock()
        total = len(tasks)
        completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        return {
            "total": total,
            "completed": completed,
            "pending": sum(1 for t in tasks if t.status == TaskStatus.PENDING),
            "in_progress": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            "overdue": sum(1 for t in tasks if t.is_overdue(now)),
            "completion_rate": (completed / total) * 100 if total else 0.0,
        }

    # =========================================================================
    # Templates
    # =========================================================================

    def templates(self) -> list[TaskTemplate]:
        return self.storage.load(StorageKey.TEMPLATES, TaskTemplate)

    def add_template(self, template: TaskTemplate) -> TaskTemplate:
        templates = self.templates()
        templates.append(template)
        self.storage.save(StorageKey.TEMPLATES, templates)
        logger.info("template_added", template_id=template.id, name=template.name)
        return template

    def create_from_template(self, template_id: str) -> Optional[Task]:
        template = next((t for t in self.templates() if t.id == template_id), None)
        if template is None:
            logger.warning("template_not_found", template_id=template_id)
            return None

        return self.create(
            TaskDraft(
                title=template.title,
                description=template.task_description,
                priority=template.priority,
                project=template.project,
                tags=list(template.tags),
                estimated_minutes=template.estimated_minutes,
            )
        )

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _check_changes(changes: dict[str, Any]) -> None:
        unknown = set(changes) - set(Task.model_fields)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "unknown task field")
        protected = set(changes) & PROTECTED_FIELDS
        if protected:
            raise ValidationError(sorted(protected)[0], "cannot be changed")
        if "title" in changes and not str(changes["title"] or "").strip():
            raise ValidationError("title", "must not be empty")

    @staticmethod
    def _apply(task: Task, changes: dict[str, Any], now: datetime) -> tuple[Task, bool]:
        """Merge changes and status side effects. Returns (task, became_completed)."""
        data = task.model_dump()
        data.update(changes)
        data["updated_at"] = now

        try:
            updated = Task.model_validate(data)
        except SchemaError as e:
            raise ValidationError(_first_field(e), str(e)) from e

        became_completed = False
        if updated.status != task.status:
            if updated.status == TaskStatus.IN_PROGRESS and task.started_at is None:
                updated.started_at = now
            elif updated.status == TaskStatus.COMPLETED and task.started_at is not None:
                updated.completed_at = now
                updated.actual_minutes = round(
                    (now - task.started_at).total_seconds() / 60
                )
                became_completed = True

        return updated, became_completed

    def _on_completed(self, task: Task) -> None:
        if self.analytics is not None:
            self.analytics.track_completion(task)
        if self.notifications is not None:
            self.notifications.task_completed(task.title)


def _locate(tasks: list[Task], task_id: str) -> int:
    for i, task in enumerate(tasks):
        if task.id == task_id:
            return i
    raise NotFoundError("task", task_id)


def _first_field(error: SchemaError) -> str:
    errors = error.errors()
    if errors and errors[0].get("loc"):
        return str(errors[0]["loc"][0])
    return "task"
