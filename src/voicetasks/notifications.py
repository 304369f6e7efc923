"""
Notifications

Reminders, celebrations and suggestions surfaced to the user through a
Notifier (speech and/or desktop-style notifications). The application entry
point constructs one NotificationService and passes it to whatever needs it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Protocol

from voicetasks.models import NotificationSettings, TaskStatus
from voicetasks.utils.logging import get_logger

if TYPE_CHECKING:
    from voicetasks.tasks.store import TaskStore

logger = get_logger(__name__)


class NotificationKind(str, Enum):
    TASK_DUE = "task-due"
    TASK_OVERDUE = "task-overdue"
    DAILY_AGENDA = "daily-agenda"
    TASK_COMPLETED = "task-completed"
    SUGGESTION = "suggestion"


class Notifier(Protocol):
    """Output capability. Fire-and-forget: return values are ignored."""

    def speak(self, text: str) -> None:
        ...

    def notify(self, title: str, body: str, kind: NotificationKind) -> None:
        ...


class LogNotifier:
    """
    Default notifier: logs every notification and optionally echoes it.

    Args:
        echo: Called with a printable line per notification (e.g. print)
    """

    def __init__(self, echo: Optional[Callable[[str], None]] = None):
        self.echo = echo

    def speak(self, text: str) -> None:
        logger.info("speak", text=text)
        if self.echo:
            self.echo(f"(spoken) {text}")

    def notify(self, title: str, body: str, kind: NotificationKind) -> None:
        logger.info("notification", kind=kind.value, title=title, body=body)
        if self.echo:
            self.echo(f"{title} {body}")


class NotificationService:
    """
    Task-manager notifications with per-kind user settings.

    Every method returns True when the notification was handed to the
    notifier and False when settings suppressed it.
    """

    def __init__(
        self,
        notifier: Notifier,
        settings: Optional[NotificationSettings] = None,
        enabled: bool = True,
        speak: bool = False,
    ):
        """
        Args:
            notifier: Where notifications go
            settings: Per-kind toggles from user preferences
            enabled: Master switch (from application config)
            speak: Also speak each notification body
        """
        self.notifier = notifier
        self.settings = settings or NotificationSettings()
        self.enabled = enabled
        self.speak = speak

    def _send(self, allowed: bool, kind: NotificationKind, title: str, body: str) -> bool:
        if not (self.enabled and allowed):
            logger.debug("notification_suppressed", kind=kind.value)
            return False

        try:
            self.notifier.notify(title, body, kind)
            if self.speak:
                self.notifier.speak(body)
        except Exception as e:
            logger.error("notifier_error", kind=kind.value, error=str(e))
            return False
        return True

    def task_due(self, title: str, due_text: str) -> bool:
        return self._send(
            self.settings.task_reminders,
            NotificationKind.TASK_DUE,
            "⏰ Task Due Soon!",
            f'"{title}" is due {due_text}',
        )

    def task_overdue(self, title: str) -> bool:
        return self._send(
            self.settings.task_reminders,
            NotificationKind.TASK_OVERDUE,
            "🚨 Overdue Task!",
            f'"{title}" is overdue and needs attention',
        )

    def daily_agenda(self, task_count: int) -> bool:
        return self._send(
            self.settings.daily_agenda,
            NotificationKind.DAILY_AGENDA,
            "📋 Daily Agenda Ready!",
            f"You have {task_count} tasks planned for today. Ready to be productive?",
        )

    def task_completed(self, title: str) -> bool:
        return self._send(
            self.settings.celebrate_completions,
            NotificationKind.TASK_COMPLETED,
            "✅ Task Completed!",
            f'Great job finishing "{title}"!',
        )

    def smart_suggestion(self, suggestion: str) -> bool:
        return self._send(
            self.settings.smart_suggestions,
            NotificationKind.SUGGESTION,
            "💡 Smart Suggestion",
            suggestion,
        )


class DueTaskMonitor:
    """
    Background checker for due and overdue tasks.

    Each task is announced at most once per due date for each condition.
    """

    def __init__(
        self,
        store: "TaskStore",
        notifications: NotificationService,
        check_interval: float = 60.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the monitor.

        Args:
            store: Task store to read from
            notifications: Where announcements go
            check_interval: Seconds between checks
            clock: Source of "now"
        """
        self.store = store
        self.notifications = notifications
        self.check_interval = check_interval
        self.clock = clock

        # task id -> announced "due-<iso>" / "overdue-<iso>" keys
        self._notified: dict[str, set[str]] = {}
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the monitor background task."""
        if self._running:
            logger.warning("due_monitor_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("due_monitor_started", interval=self.check_interval)

    async def stop(self) -> None:
        """Stop the monitor."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("due_monitor_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                self.check_now()
            except Exception as e:
                logger.error("due_check_failed", error=str(e))

            await asyncio.sleep(self.check_interval)

    def check_now(self) -> int:
        """
        Check every task once.

        Returns:
            Number of notifications sent
        """
        now = self.clock()
        within_hour = now + timedelta(hours=1)
        sent = 0

        tasks = self.store.all()
        for task in tasks:
            if task.status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
                self._notified.pop(task.id, None)
                continue
            if task.due_date is None:
                continue

            due = task.due_date.isoformat()
            # Announcements for an earlier due date no longer apply
            seen = {key for key in self._notified.get(task.id, ()) if key.endswith(due)}
            self._notified[task.id] = seen

            if task.due_date < now:
                if f"overdue-{due}" not in seen:
                    seen.add(f"overdue-{due}")
                    sent += self.notifications.task_overdue(task.title)
            elif task.due_date <= within_hour and f"due-{due}" not in seen:
                seen.add(f"due-{due}")
                minutes = int((task.due_date - now).total_seconds() // 60)
                sent += self.notifications.task_due(task.title, f"in {minutes} minutes")

        # Deleted tasks
        live = {task.id for task in tasks}
        for task_id in set(self._notified) - live:
            del self._notified[task_id]

        if sent:
            logger.info("due_notifications_sent", count=sent)
        return sent

    def send_daily_agenda(self) -> bool:
        """Announce how many open tasks are due today, if any."""
        today = self.clock().date()
        count = sum(
            1
            for task in self.store.all()
            if task.status not in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)
            and task.due_date is not None
            and task.due_date.date() == today
        )
        if count == 0:
            return False
        return self.notifications.daily_agenda(count)

    @property
    def tracked_tasks(self) -> set[str]:
        """Ids of open tasks with a remembered announcement."""
        return {task_id for task_id, keys in self._notified.items() if keys}
