"""
Task Extractor

Detects task-like statements in free-form chat and turns them into task
drafts with priority, due date, project and tags. Pure pattern matching:
nothing here raises for odd input, it just finds fewer tasks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from voicetasks.extraction.intents import ConversationIntent, classify_intent
from voicetasks.models import Message, Priority, TaskDraft, UserMemory
from voicetasks.utils.dates import parse_due_text
from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ExtractionResult:
    """Outcome of one extraction pass."""
    intent: ConversationIntent
    tasks: list[TaskDraft] = field(default_factory=list)
    confidence: float = 0.5


_STOP = r"(?:\.|$|,|\s+(?:by|before|on|at|in)\b)"


class TaskExtractor:
    """
    Pattern-driven task extraction.

    Nothing is extracted unless one of the indicator phrases occurs. The
    extraction patterns then run in order, and a match that overlaps one
    already accepted is skipped so a phrase yields a single task.
    """

    TASK_INDICATORS = [
        "need to",
        "have to",
        "should",
        "must",
        "want to",
        "plan to",
        "remind me to",
        "don't forget to",
        "make sure to",
        "schedule",
        "deadline",
        "due",
        "finish",
        "complete",
        "work on",
    ]

    # (name, pattern) in precedence order; group 1 is the task text
    EXTRACTION_PATTERNS = [
        ("direct", r"(?:i (?:need to|have to|should|must|want to|plan to)\s+)(.+?)" + _STOP),
        ("reminder", r"(?:remind me to\s+)(.+?)" + _STOP),
        ("project_work", r"(?:work on|working on|continue|finish|complete)\s+(.+?)" + _STOP),
        ("meeting", r"(?:meeting|call|discussion)\s+(?:with|about)\s+(.+?)(?:\.|$|,|\s+(?:at|on|in)\b)"),
        ("deadline", r"(.+?)\s+(?:is due|due|deadline)\s+(?:by|on|at|in)\s+(.+?)(?:\.|$|,)"),
    ]

    # Checked in order, first bucket with a hit wins
    PRIORITY_WORDS = [
        (Priority.URGENT, ["urgent", "asap", "immediately", "critical", "emergency"]),
        (Priority.HIGH, ["important", "priority", "soon", "quickly", "deadline"]),
        (Priority.LOW, ["later", "eventually", "when possible", "low priority", "sometime"]),
    ]

    DUE_DATE_PATTERNS = [
        r"\b(?:by|before|on|at|in)\s+(today|tomorrow|monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
        r"\b(?:by|before|on|at|in)\s+(\d{1,2}/\d{1,2})\b",
        r"\b(?:by|before|on|at|in)\s+(next week|this week|next month)\b",
        r"\b(?:by|before|on)\s+((?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2})\b",
    ]

    PROJECT_PATTERNS = [
        r"(?:for|on|in)\s+(?:the\s+)?([A-Z][a-zA-Z\s]+?)\s+project",
        r"(?:project\s+)([A-Z][a-zA-Z\s]+)",
    ]

    TAG_PATTERNS = [
        r"#(\w+)",
        r"\b(meeting|call|email|research|review|development|design|testing|documentation)\b",
    ]

    FILLER_WORDS = re.compile(r"\b(?:um|uh)\b", re.IGNORECASE)

    MIN_TASK_LENGTH = 4

    def __init__(
        self,
        user_memory: Optional[UserMemory] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the extractor.

        Args:
            user_memory: Source of learned project names
            clock: Reference time for relative due dates
        """
        self.user_memory = user_memory or UserMemory()
        self.clock = clock

        self._extraction_patterns = [
            (name, re.compile(p, re.IGNORECASE))
            for name, p in self.EXTRACTION_PATTERNS
        ]
        self._due_patterns = [re.compile(p, re.IGNORECASE) for p in self.DUE_DATE_PATTERNS]
        self._project_patterns = [re.compile(p, re.IGNORECASE) for p in self.PROJECT_PATTERNS]
        self._tag_patterns = [re.compile(p, re.IGNORECASE) for p in self.TAG_PATTERNS]

    def extract(
        self,
        utterance: str,
        history: Sequence[Message] = (),
    ) -> ExtractionResult:
        """
        Classify an utterance and pull task drafts out of it.

        Args:
            utterance: What the user said or typed
            history: Earlier messages (context only)

        Returns:
            ExtractionResult with intent, drafts and a confidence in [0.1, 1.0]
        """
        text = utterance or ""
        intent = classify_intent(text)
        has_indicator = self.has_task_indicator(text)

        tasks = self._extract_tasks(text) if has_indicator else []
        confidence = self.score(text, has_indicator, len(tasks))

        logger.debug(
            "extraction_complete",
            intent=intent.value,
            tasks=len(tasks),
            confidence=confidence,
            history=len(history),
        )
        return ExtractionResult(intent=intent, tasks=tasks, confidence=confidence)

    def has_task_indicator(self, text: str) -> bool:
        lowered = text.lower()
        return any(indicator in lowered for indicator in self.TASK_INDICATORS)

    def score(self, text: str, has_indicator: bool, task_count: int) -> float:
        confidence = 0.5
        if has_indicator:
            confidence += 0.2
        if task_count > 0:
            confidence += 0.2
        if len(text) < 10:
            confidence -= 0.3
        if self.FILLER_WORDS.search(text):
            confidence -= 0.1
        return round(max(0.1, min(1.0, confidence)), 2)

    # =========================================================================
    # Candidate extraction
    # =========================================================================

    def _extract_tasks(self, text: str) -> list[TaskDraft]:
        accepted: list[tuple[int, int]] = []
        tasks: list[TaskDraft] = []

        # Entities come from the whole utterance, so they are shared
        priority = self.detect_priority(text)
        due_date = self.detect_due_date(text)
        project = self.detect_project(text)
        tags = self.extract_tags(text)

        for name, pattern in self._extraction_patterns:
            for match in pattern.finditer(text):
                span = match.span(1)
                if any(span[0] < end and start < span[1] for start, end in accepted):
                    continue

                raw = match.group(1).strip()
                if len(raw) < self.MIN_TASK_LENGTH:
                    continue

                accepted.append(span)
                tasks.append(
                    TaskDraft(
                        title=self.clean_title(raw),
                        description=self.describe(raw, text),
                        priority=priority,
                        due_date=due_date,
                        project=project,
                        tags=tags,
                    )
                )
                logger.debug("task_candidate", pattern=name, text=raw)

        return tasks

    def detect_priority(self, text: str) -> Priority:
        lowered = text.lower()
        for priority, words in self.PRIORITY_WORDS:
            if any(word in lowered for word in words):
                return priority
        return Priority.MEDIUM

    def detect_due_date(self, text: str) -> Optional[datetime]:
        for pattern in self._due_patterns:
            match = pattern.search(text)
            if match:
                return parse_due_text(match.group(1), self.clock())
        return None

    def detect_project(self, text: str) -> Optional[str]:
        lowered = text.lower()
        for project in self.user_memory.work_patterns.common_projects:
            if project and project.lower() in lowered:
                return project

        for pattern in self._project_patterns:
            match = pattern.search(text)
            if match:
                return match.group(1).strip()
        return None

    def extract_tags(self, text: str) -> list[str]:
        tags: list[str] = []
        for pattern in self._tag_patterns:
            tags.extend(m.group(1).lower() for m in pattern.finditer(text))
        return list(dict.fromkeys(tags))

    @staticmethod
    def clean_title(raw: str) -> str:
        title = re.sub(r"^to\s+", "", raw.strip(), flags=re.IGNORECASE)
        title = re.sub(r"\s+", " ", title).strip()
        return title[:1].upper() + title[1:]

    @staticmethod
    def describe(raw: str, text: str) -> str:
        """The sentence of the utterance containing the task text."""
        needle = raw.lower()
        for sentence in re.split(r"[.!?]+", text):
            if needle in sentence.lower():
                return sentence.strip()
        return raw
