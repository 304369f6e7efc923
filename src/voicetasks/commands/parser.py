"""
Voice Command Parser

Maps short imperative utterances ("mark complete: send the email",
"rename the report task to quarterly summary") straight to commands,
bypassing conversational extraction.

Rules are tried in table order and the first matching pattern wins, so the
order of COMMAND_RULES is the precedence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from voicetasks.models import Priority, TaskStatus
from voicetasks.utils.dates import parse_due_text
from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)


class CommandType(str, Enum):
    QUICK_TASK = "quick_task"
    MARK_COMPLETE = "mark_complete"
    CHANGE_PRIORITY = "change_priority"
    SEARCH_TASKS = "search_tasks"
    START_TIMER = "start_timer"
    SHOW_AGENDA = "show_agenda"
    EDIT_TITLE = "edit_title"
    EDIT_DESCRIPTION = "edit_description"
    EDIT_PROJECT = "edit_project"
    EDIT_TAGS = "edit_tags"
    EDIT_DUE_DATE = "edit_due_date"
    EDIT_STATUS = "edit_status"
    NONE = "none"


@dataclass
class VoiceCommand:
    """A parsed command."""
    type: CommandType
    action: str
    parameters: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    original_text: str = ""

    def __str__(self) -> str:
        return f"VoiceCommand({self.type.value}: {self.original_text[:50]})"


@dataclass(frozen=True)
class CommandRule:
    """
    Patterns for one command family.

    Named groups carry the parts: task (target identifier or new task text),
    value (new field value), query, duration, unit, context. The first group
    of a pattern is its primary capture for confidence scoring.
    """
    type: CommandType
    patterns: tuple[str, ...]
    keywords: tuple[str, ...] = ()


_PRIORITY = r"(?P<value>urgent|high|medium|low)"
_STATUS = r"(?P<value>pending|in-progress|completed|cancelled)"
_FIELDS = r"(?!(?:the\s+)?(?:description|project|tags?|due date|status)\b)"
_NOT_QUERY = r"(?!(?:search|find|show|list|what tasks|which tasks)\b)"

COMMAND_RULES: tuple[CommandRule, ...] = (
    CommandRule(
        CommandType.QUICK_TASK,
        (
            r"^(?:quick task|create task|new task|add task)[\s:]+(?P<task>.+)$",
            r"^task[\s:]+(?P<task>.+)$",
            r"^(?:remember to|remind me to)[\s:]+(?P<task>.+)$",
        ),
        keywords=("quick task",),
    ),
    CommandRule(
        CommandType.MARK_COMPLETE,
        (
            r"^(?:mark complete|complete|done|finished)[\s:]+(?P<task>.+)$",
            r"^(?:check off|tick off)[\s:]+(?P<task>.+)$",
            r"^(?P<task>.+)\s+(?:is done|is complete|is finished)$",
        ),
        keywords=("mark complete", "done"),
    ),
    CommandRule(
        CommandType.CHANGE_PRIORITY,
        (
            r"^(?:set priority|priority|make)[\s:]+(?P<task>.+?)\s+(?:to\s+)?" + _PRIORITY + r"$",
            r"^" + _PRIORITY + r"\s+priority[\s:]+(?P<task>.+)$",
            r"^(?P<task>.+?)\s+(?:is|should be)\s+" + _PRIORITY + r"\s+priority$",
        ),
        keywords=("priority",),
    ),
    CommandRule(
        CommandType.EDIT_TITLE,
        (
            r"^(?:change|update|edit|rename)\s+(?:the\s+)?title\s+(?:of\s+)?(?P<task>.+?)\s+(?:to|into)\s+(?P<value>.+)$",
            r"^rename\s+(?P<task>.+?)\s+(?:to|as)\s+(?P<value>.+)$",
            r"^call\s+(?P<task>.+?)\s+(?P<value>.+)$",
            # Catch-all rename; leaves field edits to their own rules
            r"^(?:change|update)\s+" + _FIELDS + r"(?P<task>.+?)\s+(?:to|into)\s+(?P<value>.+)$",
        ),
        keywords=("rename", "title"),
    ),
    CommandRule(
        CommandType.EDIT_DESCRIPTION,
        (
            r"^(?:change|update|edit)\s+(?:the\s+)?description\s+(?:of\s+)?(?P<task>.+?)\s+(?:to|into)\s+(?P<value>.+)$",
            r"^(?:set|add)\s+description\s+(?:for\s+)?(?P<task>.+?)\s+(?:to|as)\s+(?P<value>.+)$",
            r"^describe\s+(?P<task>.+?)\s+as\s+(?P<value>.+)$",
        ),
        keywords=("description", "describe"),
    ),
    CommandRule(
        CommandType.EDIT_PROJECT,
        (
            r"^(?:move|assign|put)\s+(?P<task>.+?)\s+(?:to|in|under)\s+(?:the\s+)?(?P<value>.+?)\s+project$",
            r"^(?:change|update)\s+(?:the\s+)?project\s+(?:of\s+)?(?P<task>.+?)\s+(?:to|from.+to)\s+(?P<value>.+)$",
            r"^" + _NOT_QUERY + r"(?P<task>.+?)\s+(?:belongs to|is part of)\s+(?P<value>.+)$",
        ),
        keywords=("project",),
    ),
    CommandRule(
        CommandType.EDIT_STATUS,
        (
            r"^(?:mark|set|change)\s+(?P<task>.+?)\s+(?:as|to)\s+" + _STATUS + r"$",
            r"^(?P<task>.+?)\s+(?:is now|should be)\s+" + _STATUS + r"$",
            r"^(?:start working on|begin)\s+(?P<task>.+)$",
            r"^(?:pause|stop working on)\s+(?P<task>.+)$",
        ),
        keywords=("status", "working on"),
    ),
    CommandRule(
        CommandType.EDIT_TAGS,
        (
            r"^add\s+(?P<value>[\w, -]+?)\s+tags?\s+to\s+(?P<task>.+)$",
            r"^(?:add|tag|label)\s+(?P<task>.+?)\s+(?:with|as)\s+(?P<value>.+)$",
            r"^(?:remove|untag)\s+(?P<value>.+?)\s+(?:tags?\s+)?from\s+(?P<task>.+)$",
            r"^(?:set|change)\s+(?:the\s+)?tags\s+(?:of\s+)?(?P<task>.+?)\s+(?:to|as)\s+(?P<value>.+)$",
        ),
        keywords=("tag",),
    ),
    CommandRule(
        CommandType.EDIT_DUE_DATE,
        (
            r"^(?:set|change)\s+(?:the\s+)?due date\s+(?:of\s+)?(?P<task>.+?)\s+(?:to|for)\s+(?P<value>.+)$",
            r"^" + _NOT_QUERY + r"(?P<task>.+?)\s+(?:is due|due)\s+(?P<value>.+)$",
            r"^(?:schedule|plan)\s+(?P<task>.+?)\s+(?:for|on)\s+(?P<value>.+)$",
            r"^" + _NOT_QUERY + r"(?P<task>.+?)\s+(?:needs to be done|should be finished)\s+(?:by|on)\s+(?P<value>.+)$",
        ),
        keywords=("due date",),
    ),
    CommandRule(
        CommandType.SEARCH_TASKS,
        (
            r"^(?:search|find|show|list)[\s:]+(?!(?:my\s+)?(?:agenda|schedule|today|tasks for today)$)(?:tasks?\s+)?(?P<query>.+)$",
            r"^(?:what tasks|which tasks)[\s:]+(?P<query>.+)$",
        ),
        keywords=("search",),
    ),
    CommandRule(
        CommandType.START_TIMER,
        (
            r"^(?:start timer|timer|focus)[\s:]+(?:for\s+)?(?P<duration>\d+)\s*(?P<unit>minutes?|mins?|hours?|hrs?)?(?:\s+for\s+(?P<context>.+))?$",
            r"^(?:pomodoro|work session)(?:\s+for\s+(?P<context>.+))?$",
        ),
        keywords=("timer",),
    ),
    CommandRule(
        CommandType.SHOW_AGENDA,
        (
            r"^(?:show|what's|what is)\s+(?:my\s+)?(?:agenda|schedule|today|tasks for today)$",
            r"^(?:daily agenda|today's tasks)$",
        ),
        keywords=("agenda",),
    ),
)

ACTIONS = {
    CommandType.QUICK_TASK: "create_task",
    CommandType.MARK_COMPLETE: "complete_task",
    CommandType.CHANGE_PRIORITY: "update_task_priority",
    CommandType.SEARCH_TASKS: "search_tasks",
    CommandType.START_TIMER: "start_focus_timer",
    CommandType.SHOW_AGENDA: "show_daily_agenda",
    CommandType.EDIT_TITLE: "edit_task_title",
    CommandType.EDIT_DESCRIPTION: "edit_task_description",
    CommandType.EDIT_PROJECT: "edit_task_project",
    CommandType.EDIT_STATUS: "edit_task_status",
    CommandType.EDIT_DUE_DATE: "edit_task_due_date",
}

POMODORO_MINUTES = 25

COMMAND_SUGGESTIONS = [
    "Try: 'Quick task: Review the project proposal'",
    "Try: 'Mark complete: Send the email'",
    "Try: 'High priority: Fix the bug in login'",
    "Try: 'Rename my presentation task to quarterly review slides'",
    "Try: 'Change the project of the website task to marketing'",
    "Try: 'Set due date of the report to tomorrow'",
    "Try: 'Start working on the development task'",
    "Try: 'Add urgent tag to the bug fix task'",
    "Try: 'Search: tasks due today'",
    "Try: 'Timer: 25 minutes for coding'",
    "Try: 'Show agenda'",
]


def command_suggestions() -> list[str]:
    """Example commands to show the user."""
    return list(COMMAND_SUGGESTIONS)


class VoiceCommandParser:
    """
    Parses quick commands.

    Unrecognized text is not an error: it comes back as a NONE command with
    zero confidence.
    """

    # Checked in order, first bucket with a hit wins
    PRIORITY_KEYWORDS = [
        (Priority.URGENT, ["urgent", "critical", "asap", "immediately"]),
        (Priority.HIGH, ["high", "important", "priority", "soon"]),
        (Priority.MEDIUM, ["medium", "normal", "regular"]),
        (Priority.LOW, ["low", "later", "sometime", "eventually"]),
    ]

    PROJECT_PATTERNS = [
        r"(?:for|on|in)\s+(?:the\s+)?([A-Z][a-zA-Z\s]+?)\s+project",
        r"(?:project\s+)([A-Z][a-zA-Z\s]+)",
        r"@(\w+)",
    ]

    TAG_PATTERNS = [
        r"#(\w+)",
        r"\b(meeting|call|email|research|review|development|design|testing|documentation|urgent|important)\b",
    ]

    FILLER_WORDS = re.compile(r"\b(?:um|uh)\b", re.IGNORECASE)

    QUICK_THRESHOLD = 0.6

    def __init__(
        self,
        rules: tuple[CommandRule, ...] = COMMAND_RULES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the parser.

        Args:
            rules: Command table in precedence order
            clock: Reference time for due dates
        """
        self.rules = rules
        self.clock = clock

        self._rules = [
            (rule, [re.compile(p, re.IGNORECASE) for p in rule.patterns])
            for rule in rules
        ]
        self._priority_re = [
            (priority, re.compile(r"\b(?:" + "|".join(words) + r")\b", re.IGNORECASE))
            for priority, words in self.PRIORITY_KEYWORDS
        ]
        self._project_re = [re.compile(p, re.IGNORECASE) for p in self.PROJECT_PATTERNS]
        self._tag_re = [re.compile(p, re.IGNORECASE) for p in self.TAG_PATTERNS]

        self._builders: dict[CommandType, Callable[[re.Match, str], dict[str, Any]]] = {
            CommandType.QUICK_TASK: self._quick_task,
            CommandType.MARK_COMPLETE: self._mark_complete,
            CommandType.CHANGE_PRIORITY: self._change_priority,
            CommandType.SEARCH_TASKS: self._search,
            CommandType.START_TIMER: self._timer,
            CommandType.SHOW_AGENDA: self._agenda,
            CommandType.EDIT_TITLE: self._edit_title,
            CommandType.EDIT_DESCRIPTION: self._edit_field("description"),
            CommandType.EDIT_PROJECT: self._edit_field("project"),
            CommandType.EDIT_STATUS: self._edit_status,
            CommandType.EDIT_TAGS: self._edit_tags,
            CommandType.EDIT_DUE_DATE: self._edit_due_date,
        }

    def parse_command(self, text: str) -> VoiceCommand:
        """
        Parse an utterance into a command.

        Args:
            text: What the user said

        Returns:
            VoiceCommand; type NONE with confidence 0 when nothing matches
        """
        clean = re.sub(r"\s+", " ", (text or "").strip().rstrip(".!?")).strip()

        for rule, patterns in self._rules:
            for pattern in patterns:
                match = pattern.match(clean)
                if match is None:
                    continue

                parameters = self._builders[rule.type](match, text)
                command = VoiceCommand(
                    type=rule.type,
                    action=parameters.pop("_action", ACTIONS.get(rule.type, rule.type.value)),
                    parameters=parameters,
                    confidence=self.confidence(match, text, rule.keywords),
                    original_text=text,
                )
                logger.debug(
                    "command_parsed",
                    type=command.type.value,
                    confidence=command.confidence,
                )
                return command

        return VoiceCommand(
            type=CommandType.NONE,
            action="no_command_detected",
            confidence=0.0,
            original_text=text,
        )

    def is_quick_command(self, text: str) -> bool:
        """True when the text should be handled as a command, not chat."""
        command = self.parse_command(text)
        return command.type != CommandType.NONE and command.confidence >= self.QUICK_THRESHOLD

    def confidence(self, match: re.Match, text: str, keywords: tuple[str, ...] = ()) -> float:
        confidence = 0.8
        lowered = text.lower()

        if any(keyword in lowered for keyword in keywords):
            confidence += 0.1

        primary = (match.group(1) or "").strip() if match.re.groups else ""
        if len(primary) < 3:
            confidence -= 0.3
        if self.FILLER_WORDS.search(text):
            confidence -= 0.1

        if ":" in text or " to " in lowered:
            confidence += 0.1

        return round(max(0.1, min(1.0, confidence)), 2)

    @staticmethod
    def suggestions() -> list[str]:
        return command_suggestions()

    # =========================================================================
    # Entity detection
    # =========================================================================

    def detect_priority(self, text: str) -> Priority:
        for priority, pattern in self._priority_re:
            if pattern.search(text):
                return priority
        return Priority.MEDIUM

    def detect_project(self, text: str) -> Optional[str]:
        for pattern in self._project_re:
            match = pattern.search(text)
            if match:
                return match.group(1).strip()
        return None

    def extract_tags(self, text: str) -> list[str]:
        tags: list[str] = []
        for pattern in self._tag_re:
            tags.extend(m.group(1).lower() for m in pattern.finditer(text))
        return list(dict.fromkeys(tags))

    def search_filters(self, text: str) -> dict[str, str]:
        """Structured filters implied by a search utterance."""
        lowered = text.lower()
        filters: dict[str, str] = {}

        project = self.detect_project(text)
        if project:
            filters["project"] = project

        priority = self.detect_priority(text)
        if priority != Priority.MEDIUM:
            filters["priority"] = priority.value

        if "completed" in lowered or "done" in lowered:
            filters["status"] = TaskStatus.COMPLETED.value
        elif "pending" in lowered or "todo" in lowered:
            filters["status"] = TaskStatus.PENDING.value
        elif "in progress" in lowered or "working on" in lowered:
            filters["status"] = TaskStatus.IN_PROGRESS.value

        # Later checks win
        for phrase, due in (
            ("today", "today"),
            ("tomorrow", "tomorrow"),
            ("this week", "this_week"),
            ("overdue", "overdue"),
        ):
            if phrase in lowered:
                filters["due"] = due

        return filters

    @staticmethod
    def timeframe(text: str) -> str:
        lowered = text.lower()
        for phrase, frame in (
            ("today", "today"),
            ("tomorrow", "tomorrow"),
            ("this week", "week"),
            ("this month", "month"),
        ):
            if phrase in lowered:
                return frame
        return "today"

    @staticmethod
    def clean_title(title: str) -> str:
        title = re.sub(r"^to\s+", "", title.strip(), flags=re.IGNORECASE)
        title = re.sub(r"\s+", " ", title).strip()
        return title[:1].upper() + title[1:]

    # =========================================================================
    # Builders
    # =========================================================================

    def _quick_task(self, match: re.Match, text: str) -> dict[str, Any]:
        task_text = match.group("task").strip()
        return {
            "title": self.clean_title(task_text),
            "priority": self.detect_priority(text),
            "project": self.detect_project(text),
            "tags": self.extract_tags(text),
            "description": task_text,
        }

    def _mark_complete(self, match: re.Match, text: str) -> dict[str, Any]:
        return {
            "task_identifier": match.group("task").strip(),
            "update_type": "complete",
            "new_value": TaskStatus.COMPLETED,
        }

    def _change_priority(self, match: re.Match, text: str) -> dict[str, Any]:
        return {
            "task_identifier": match.group("task").strip(),
            "update_type": "priority",
            "new_value": Priority(match.group("value").lower()),
        }

    def _search(self, match: re.Match, text: str) -> dict[str, Any]:
        return {
            "query": match.group("query").strip(),
            "filters": self.search_filters(text),
        }

    def _timer(self, match: re.Match, text: str) -> dict[str, Any]:
        groups = match.groupdict()
        duration = POMODORO_MINUTES
        if groups.get("duration"):
            duration = int(groups["duration"]) or POMODORO_MINUTES
            if (groups.get("unit") or "").lower().startswith("h"):
                duration *= 60

        return {
            "duration": duration,
            "task_context": (groups.get("context") or "").strip(),
            "type": "pomodoro" if duration == POMODORO_MINUTES else "custom",
        }

    def _agenda(self, match: re.Match, text: str) -> dict[str, Any]:
        return {"timeframe": self.timeframe(text), "include_completed": False}

    def _edit_title(self, match: re.Match, text: str) -> dict[str, Any]:
        return {
            "task_identifier": match.group("task").strip(),
            "edit_type": "title",
            "new_value": self.clean_title(match.group("value")),
        }

    @staticmethod
    def _edit_field(name: str) -> Callable[[re.Match, str], dict[str, Any]]:
        def build(match: re.Match, text: str) -> dict[str, Any]:
            return {
                "task_identifier": match.group("task").strip(),
                "edit_type": name,
                "new_value": match.group("value").strip(),
            }
        return build

    def _edit_status(self, match: re.Match, text: str) -> dict[str, Any]:
        value = match.groupdict().get("value")
        if value:
            status = TaskStatus(value.lower())
        elif re.match(r"(?:pause|stop working on)\b", text.strip(), re.IGNORECASE):
            status = TaskStatus.PENDING
        else:
            status = TaskStatus.IN_PROGRESS

        return {
            "task_identifier": match.group("task").strip(),
            "edit_type": "status",
            "new_value": status,
        }

    def _edit_tags(self, match: re.Match, text: str) -> dict[str, Any]:
        lowered = text.lower()
        if re.match(r"\s*(?:remove|untag)\b", lowered):
            action = "remove"
        elif re.match(r"\s*(?:set|change)\b", lowered):
            action = "set"
        else:
            action = "add"

        tags = [
            tag.strip().lstrip("#").lower()
            for tag in re.split(r"[,\s]+", match.group("value"))
        ]
        tags = [tag for tag in tags if tag and tag not in ("and", "the")]

        return {
            "_action": f"{action}_task_tags",
            "task_identifier": match.group("task").strip(),
            "edit_type": "tags",
            "new_value": list(dict.fromkeys(tags)),
            "action": action,
        }

    def _edit_due_date(self, match: re.Match, text: str) -> dict[str, Any]:
        due_text = match.group("value").strip()
        return {
            "task_identifier": match.group("task").strip(),
            "edit_type": "due_date",
            "new_value": parse_due_text(due_text, self.clock()),
            "due_date_text": due_text,
        }
