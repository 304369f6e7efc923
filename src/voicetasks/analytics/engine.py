"""
Analytics Engine

Derives productivity patterns, energy windows, time estimates and task
ordering from the append-only completion history. Everything is recomputed
from storage on each call; nothing is cached between calls.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence, Union

import numpy as np

from voicetasks.models import Priority, Task, TaskAnalytics, TaskDraft, TaskStatus
from voicetasks.storage.base import PersistenceAdapter, StorageKey
from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)

HOURS = 24

FALLBACK_MINUTES = {
    Priority.LOW: 20,
    Priority.MEDIUM: 45,
    Priority.HIGH: 75,
    Priority.URGENT: 120,
}

TaskLike = Union[Task, TaskDraft]


class EnergyLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class ProductivityPattern:
    """Completion statistics for one hour of the day."""
    hour_of_day: int
    completion_rate: float
    avg_completion_time: float
    task_count: int


@dataclass
class EnergyWindow:
    """A run of hours sharing one energy level."""
    start_hour: int
    end_hour: int
    energy_level: EnergyLevel
    confidence: float

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour


@dataclass
class EstimationFactors:
    priority: float = 1.0
    complexity: float = 1.0
    project_familiarity: float = 1.0
    tag_similarity: float = 1.0


@dataclass
class TaskEstimation:
    task_id: str
    estimated_minutes: int
    confidence: float
    based_on_similar: list[str] = field(default_factory=list)
    factors: EstimationFactors = field(default_factory=EstimationFactors)


@dataclass
class TaskRecommendation:
    task_id: str
    score: int
    reasons: list[str] = field(default_factory=list)


@dataclass
class TimeSuggestion:
    hour: int
    energy_level: EnergyLevel
    confidence: float


def tag_overlap(task_tags: Sequence[str], item_tags: Sequence[str]) -> float:
    """Shared tags over the larger tag list; 0 when the task has no tags."""
    if not task_tags:
        return 0.0
    common = sum(1 for tag in task_tags if tag in item_tags)
    return common / max(len(task_tags), len(item_tags))


class AnalyticsEngine:
    """
    Productivity analytics over stored TaskAnalytics records.

    Args:
        storage: Persistence adapter holding the analytics collection
        clock: Source of "now" for ordering decisions
    """

    def __init__(
        self,
        storage: PersistenceAdapter,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage = storage
        self.clock = clock

    def load(self) -> list[TaskAnalytics]:
        return self.storage.load(StorageKey.ANALYTICS, TaskAnalytics)

    # =========================================================================
    # Recording
    # =========================================================================

    def track_completion(self, task: Task) -> Optional[TaskAnalytics]:
        """
        Record a completion fact.

        No-op unless the task is completed and has both started_at and
        completed_at.
        """
        if (
            task.status != TaskStatus.COMPLETED
            or task.started_at is None
            or task.completed_at is None
        ):
            return None

        completed = task.completed_at
        record = TaskAnalytics(
            task_id=task.id,
            actual_minutes=round((completed - task.started_at).total_seconds() / 60),
            completed_at=completed,
            priority=task.priority,
            tags=list(task.tags),
            project=task.project,
            hour_of_day=completed.hour,
            day_of_week=(completed.weekday() + 1) % 7,
        )

        records = self.load()
        records.append(record)
        if not self.storage.save(StorageKey.ANALYTICS, records):
            logger.error("analytics_record_failed", task_id=task.id)
            return None

        logger.info(
            "completion_tracked",
            task_id=task.id,
            minutes=record.actual_minutes,
            hour=record.hour_of_day,
        )
        return record

    # =========================================================================
    # Patterns and energy
    # =========================================================================

    def compute_productivity_patterns(self) -> list[ProductivityPattern]:
        """One pattern per hour 0-23, including hours with no data."""
        return self._patterns(self.load())

    def detect_energy_windows(self) -> list[EnergyWindow]:
        return self._windows(self._patterns(self.load()))

    def current_energy_level(self, hour: Optional[int] = None) -> EnergyLevel:
        """Energy level of the window containing `hour`, medium if none does."""
        if hour is None:
            hour = self.clock().hour
        return _level_at(hour, self.detect_energy_windows())

    def optimal_time_suggestions(self, task: TaskLike) -> list[TimeSuggestion]:
        """
        Up to three hours suited to a task.

        High and urgent tasks look for high-energy hours (medium ones also
        qualify); everything else looks for medium-energy hours.
        """
        important = task.priority in (Priority.HIGH, Priority.URGENT)
        wanted = {EnergyLevel.HIGH, EnergyLevel.MEDIUM} if important else {EnergyLevel.MEDIUM}

        suggestions = [
            TimeSuggestion(hour=hour, energy_level=window.energy_level, confidence=window.confidence)
            for window in self.detect_energy_windows()
            if window.energy_level in wanted
            for hour in range(window.start_hour, window.end_hour + 1)
        ]
        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        return suggestions[:3]

    @staticmethod
    def _patterns(records: Sequence[TaskAnalytics]) -> list[ProductivityPattern]:
        hours = np.array([r.hour_of_day for r in records], dtype=np.int64)
        minutes = np.array([r.actual_minutes for r in records], dtype=np.float64)

        counts = np.bincount(hours, minlength=HOURS)
        totals = np.bincount(hours, weights=minutes, minlength=HOURS)
        # Every record is a completion, so completed == observed
        completed = counts

        patterns = []
        for hour in range(HOURS):
            count = int(counts[hour])
            patterns.append(
                ProductivityPattern(
                    hour_of_day=hour,
                    completion_rate=float(completed[hour] / count) if count else 0.0,
                    avg_completion_time=float(totals[hour] / count) if count else 0.0,
                    task_count=count,
                )
            )
        return patterns

    @staticmethod
    def _windows(patterns: Sequence[ProductivityPattern]) -> list[EnergyWindow]:
        observed = [p for p in patterns if p.task_count > 0]
        if not observed:
            return []

        avg_rate = float(np.mean([p.completion_rate for p in observed]))
        avg_time = float(np.mean([p.avg_completion_time for p in observed]))

        windows: list[EnergyWindow] = []
        current: Optional[EnergyWindow] = None

        for pattern in observed:
            if pattern.completion_rate > avg_rate * 1.2 and pattern.avg_completion_time < avg_time * 0.8:
                level = EnergyLevel.HIGH
            elif pattern.completion_rate < avg_rate * 0.8 or pattern.avg_completion_time > avg_time * 1.2:
                level = EnergyLevel.LOW
            else:
                level = EnergyLevel.MEDIUM

            if current is not None and current.energy_level == level:
                current.end_hour = pattern.hour_of_day
                continue

            if current is not None:
                windows.append(current)
            current = EnergyWindow(
                start_hour=pattern.hour_of_day,
                end_hour=pattern.hour_of_day,
                energy_level=level,
                confidence=min(1.0, pattern.task_count / 10),
            )

        if current is not None:
            windows.append(current)
        return windows

    # =========================================================================
    # Estimation and ordering
    # =========================================================================

    def estimate_task_time(self, task: TaskLike) -> TaskEstimation:
        return self._estimate(task, self.load())

    @staticmethod
    def _estimate(task: TaskLike, records: Sequence[TaskAnalytics]) -> TaskEstimation:
        factors = EstimationFactors()
        similar: list[TaskAnalytics] = []

        for item in records:
            similarity = 0.0
            priority_match = item.priority == task.priority
            project_match = bool(task.project) and item.project == task.project
            overlap = tag_overlap(task.tags, item.tags)

            if priority_match:
                similarity += 0.3
            if project_match:
                similarity += 0.3
            similarity += overlap * 0.4

            if similarity > 0.3:
                similar.append(item)
                if priority_match:
                    factors.priority = 1.2
                if project_match:
                    factors.project_familiarity = 1.3
                if task.tags:
                    factors.tag_similarity = max(factors.tag_similarity, 1 + overlap)

        if similar:
            minutes = _round_half_up(float(np.mean([item.actual_minutes for item in similar])))
            confidence = min(0.9, 0.4 + 0.1 * len(similar))
        else:
            minutes = float(FALLBACK_MINUTES[task.priority])
            confidence = 0.4

        text_length = len(task.title or "") + len(task.description or "")
        if text_length > 100:
            factors.complexity = 1.4
        elif 0 < text_length < 30:
            factors.complexity = 0.7
        minutes = _round_half_up(minutes * factors.complexity)

        return TaskEstimation(
            task_id=task.id or "",
            estimated_minutes=max(5, minutes),
            confidence=round(confidence, 2),
            based_on_similar=[item.task_id for item in similar[:5]],
            factors=factors,
        )

    def calculate_task_order(self, tasks: Sequence[Task]) -> list[TaskRecommendation]:
        """
        Rank pending tasks, highest score first.

        Score: priority weight x25, +30/+15 for deadlines within 24h/72h,
        +20/+10 for an energy match with the current hour, +10 for tasks
        estimated at 30 minutes or less.
        """
        records = self.load()
        now = self.clock()
        energy = _level_at(now.hour, self._windows(self._patterns(records)))

        recommendations = []
        for task in tasks:
            if task.status != TaskStatus.PENDING:
                continue

            score = task.priority.weight * 25
            reasons = [f"Priority: {task.priority.value}"]

            if task.due_date is not None:
                hours_until_due = (task.due_date - now).total_seconds() / 3600
                if hours_until_due < 24:
                    score += 30
                    reasons.append("Due within 24 hours")
                elif hours_until_due < 72:
                    score += 15
                    reasons.append("Due within 3 days")

            if energy == EnergyLevel.HIGH and task.priority in (Priority.HIGH, Priority.URGENT):
                score += 20
                reasons.append("High energy period - good for important tasks")
            elif energy == EnergyLevel.LOW and task.priority == Priority.LOW:
                score += 10
                reasons.append("Low energy period - good for simple tasks")

            estimated = task.estimated_minutes
            if estimated is None:
                estimated = self._estimate(task, records).estimated_minutes
            if estimated <= 30:
                score += 10
                reasons.append("Quick task - easy to complete")

            recommendations.append(TaskRecommendation(task_id=task.id, score=score, reasons=reasons))

        recommendations.sort(key=lambda r: r.score, reverse=True)
        return recommendations


def _level_at(hour: int, windows: Sequence[EnergyWindow]) -> EnergyLevel:
    for window in windows:
        if window.contains(hour):
            return window.energy_level
    return EnergyLevel.MEDIUM


def _round_half_up(value: float) -> int:
    # Halves round up, so a 12.5 minute mean becomes 13
    return math.floor(value + 0.5)
