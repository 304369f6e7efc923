"""
Command Executor

Applies parsed voice commands to the task store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from voicetasks.commands.matching import find_tasks_by_identifier
from voicetasks.commands.parser import CommandType, VoiceCommand
from voicetasks.errors import ValidationError
from voicetasks.models import Priority, Task, TaskDraft, TaskStatus
from voicetasks.tasks.store import TaskStore
from voicetasks.utils.dates import end_of_day, next_weekday
from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)

FIELD_FOR = {
    CommandType.CHANGE_PRIORITY: "priority",
    CommandType.EDIT_TITLE: "title",
    CommandType.EDIT_DESCRIPTION: "description",
    CommandType.EDIT_PROJECT: "project",
    CommandType.EDIT_STATUS: "status",
}


@dataclass
class CommandResult:
    """Outcome of one command."""
    command: VoiceCommand
    success: bool
    message: str
    tasks: list[Task] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    resolved: bool = True  # False when no task matched the identifier


class CommandExecutor:
    """
    Runs commands against a TaskStore.

    Targeted commands act on the best fuzzy match for their identifier.
    Failures come back as unsuccessful results, never as exceptions.
    """

    def __init__(self, store: TaskStore):
        self.store = store

    def execute(self, command: VoiceCommand) -> CommandResult:
        """
        Execute a parsed command.

        Args:
            command: Output of VoiceCommandParser.parse_command

        Returns:
            CommandResult describing what happened
        """
        logger.info("command_executing", type=command.type.value, action=command.action)

        if command.type == CommandType.NONE:
            return CommandResult(command, False, "I didn't recognize a command there.")

        if command.type == CommandType.QUICK_TASK:
            return self._create(command)
        if command.type == CommandType.SEARCH_TASKS:
            return self._search(command)
        if command.type == CommandType.START_TIMER:
            return self._timer(command)
        if command.type == CommandType.SHOW_AGENDA:
            return self._agenda(command)

        identifier = command.parameters.get("task_identifier", "")
        target = self.resolve(identifier)
        if target is None:
            logger.info("command_target_unresolved", identifier=identifier)
            return CommandResult(
                command,
                False,
                f'I couldn\'t find a task matching "{identifier}".',
                resolved=False,
            )

        try:
            return self._edit(command, target)
        except ValidationError as e:
            logger.warning("command_rejected", type=command.type.value, error=str(e))
            return CommandResult(command, False, f"That change was rejected ({e}).")

    def resolve(self, identifier: str) -> Optional[Task]:
        """Best open-task match for an identifier, falling back to any task."""
        tasks = self.store.all()
        open_tasks = [t for t in tasks if t.status != TaskStatus.COMPLETED]
        matches = find_tasks_by_identifier(open_tasks, identifier) or find_tasks_by_identifier(
            tasks, identifier
        )
        return matches[0] if matches else None

    # =========================================================================
    # Handlers
    # =========================================================================

    def _create(self, command: VoiceCommand) -> CommandResult:
        params = command.parameters
        try:
            task = self.store.create(
                TaskDraft(
                    title=params.get("title", ""),
                    description=params.get("description"),
                    priority=params.get("priority") or Priority.MEDIUM,
                    project=params.get("project"),
                    tags=params.get("tags", []),
                )
            )
        except ValidationError as e:
            return CommandResult(command, False, f"I couldn't create that task ({e}).")
        return CommandResult(command, True, f'Created task "{task.title}".', tasks=[task])

    def _edit(self, command: VoiceCommand, target: Task) -> CommandResult:
        params = command.parameters
        value = params.get("new_value")

        if command.type == CommandType.MARK_COMPLETE:
            task = self.store.complete(target.id)
            message = f'Marked "{target.title}" as completed.'

        elif command.type == CommandType.EDIT_TAGS:
            tags = self._merge_tags(target.tags, value or [], params.get("action", "add"))
            task = self.store.update(target.id, tags=tags)
            message = f'Tags for "{target.title}" are now: {", ".join(tags) or "none"}.'

        elif command.type == CommandType.EDIT_DUE_DATE:
            if value is None:
                return CommandResult(
                    command,
                    False,
                    f'I couldn\'t understand the date "{params.get("due_date_text", "")}".',
                )
            task = self.store.update(target.id, due_date=value)
            message = f'"{target.title}" is now due {value:%A %B %d}.'

        else:
            name = FIELD_FOR[command.type]
            task = self.store.update(target.id, **{name: value})
            shown = getattr(value, "value", value)
            message = f'Updated {name} of "{target.title}" to {shown}.'

        if task is None:
            return CommandResult(command, False, "That task no longer exists.", resolved=False)
        return CommandResult(command, True, message, tasks=[task])

    @staticmethod
    def _merge_tags(current: list[str], tags: list[str], action: str) -> list[str]:
        if action == "set":
            return list(tags)
        if action == "remove":
            return [tag for tag in current if tag not in tags]
        return list(dict.fromkeys([*current, *tags]))

    def _search(self, command: VoiceCommand) -> CommandResult:
        query = command.parameters.get("query", "")
        filters = command.parameters.get("filters") or {}

        if filters:
            tasks = [t for t in self.store.all() if self._passes(t, filters)]
        else:
            tasks = self.store.search(query)

        if not tasks:
            return CommandResult(command, True, f'No tasks found for "{query}".', data={"filters": filters})

        titles = "; ".join(t.title for t in tasks[:5])
        more = f" and {len(tasks) - 5} more" if len(tasks) > 5 else ""
        return CommandResult(
            command,
            True,
            f"Found {len(tasks)} task(s): {titles}{more}.",
            tasks=tasks,
            data={"filters": filters},
        )

    def _passes(self, task: Task, filters: dict[str, str]) -> bool:
        now = self.store.clock()
        if "project" in filters and (task.project or "").lower() != filters["project"].lower():
            return False
        if "priority" in filters and task.priority.value != filters["priority"]:
            return False
        if "status" in filters and task.status.value != filters["status"]:
            return False

        due = filters.get("due")
        if due == "overdue":
            return task.is_overdue(now)
        if due is not None:
            if task.due_date is None:
                return False
            start, end = _window(due, now)
            return start <= task.due_date <= end
        return True

    def _timer(self, command: VoiceCommand) -> CommandResult:
        params = command.parameters
        duration = params.get("duration", 25)
        context = params.get("task_context", "")
        data = {"duration": duration, "type": params.get("type", "pomodoro")}

        if not context:
            return CommandResult(command, True, f"Starting a {duration} minute focus session.", data=data)

        target = self.resolve(context)
        if target is None:
            return CommandResult(
                command,
                True,
                f"Starting a {duration} minute focus session for {context}.",
                data=data,
            )

        task = self.store.start_timer(target.id)
        return CommandResult(
            command,
            True,
            f'Starting a {duration} minute focus session on "{target.title}".',
            tasks=[task] if task else [],
            data=data,
        )

    def _agenda(self, command: VoiceCommand) -> CommandResult:
        timeframe = command.parameters.get("timeframe", "today")
        now = self.store.clock()
        start, end = _window(timeframe, now)

        tasks = [
            t for t in self.store.all()
            if t.status != TaskStatus.COMPLETED
            and t.due_date is not None
            and start <= t.due_date <= end
        ]
        tasks.sort(key=lambda t: (t.due_date, -t.priority.weight))
        overdue = self.store.overdue()

        if not tasks:
            message = f"Nothing is due {_describe(timeframe)}."
        else:
            lines = [f"{t.due_date:%a %H:%M}  {t.title} ({t.priority.value})" for t in tasks]
            message = f"Due {_describe(timeframe)}:\n" + "\n".join(lines)
        if overdue:
            message += f"\nYou also have {len(overdue)} overdue task(s)."

        return CommandResult(command, True, message, tasks=tasks, data={"overdue": len(overdue)})


def _window(timeframe: str, now: datetime) -> tuple[datetime, datetime]:
    """Start and end of a named timeframe around now."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == "tomorrow":
        start = midnight + timedelta(days=1)
        return start, end_of_day(start)
    if timeframe in ("week", "this_week"):
        return midnight, end_of_day(next_weekday(now, 6, allow_today=True))
    if timeframe == "month":
        return midnight, end_of_day(now + timedelta(days=30))
    return midnight, end_of_day(now)


def _describe(timeframe: str) -> str:
    return {
        "tomorrow": "tomorrow",
        "week": "this week",
        "this_week": "this week",
        "month": "this month",
    }.get(timeframe, "today")
