"""
Tests for productivity analytics.
"""

from datetime import datetime, timedelta

import pytest

from voicetasks.analytics import AnalyticsEngine, EnergyLevel
from voicetasks.models import Priority, Task, TaskAnalytics, TaskDraft, TaskStatus
from voicetasks.storage import MemoryStore, StorageKey


def record(hour: int, minutes: int, priority=Priority.MEDIUM, project=None, tags=()) -> TaskAnalytics:
    return TaskAnalytics(
        task_id=f"t-{hour}-{minutes}",
        actual_minutes=minutes,
        completed_at=datetime(2024, 3, 12, hour, 0),
        priority=priority,
        project=project,
        tags=list(tags),
        hour_of_day=hour,
        day_of_week=2,
    )


@pytest.fixture
def seeded(clock) -> AnalyticsEngine:
    storage = MemoryStore()
    storage.save(
        StorageKey.ANALYTICS,
        [record(9, 30), record(9, 30), record(10, 30), record(14, 120)],
    )
    return AnalyticsEngine(storage, clock=clock)


class TestTrackCompletion:
    """Tests for recording completion facts."""

    def test_records_fact(self, analytics):
        task = Task(
            title="Ship it",
            status=TaskStatus.COMPLETED,
            priority=Priority.HIGH,
            tags=["release"],
            started_at=datetime(2024, 3, 13, 9, 0),
            completed_at=datetime(2024, 3, 13, 10, 30),
        )

        fact = analytics.track_completion(task)

        assert fact.actual_minutes == 90
        assert fact.hour_of_day == 10
        # Wednesday, with Sunday as 0
        assert fact.day_of_week == 3
        assert fact.tags == ["release"]
        assert analytics.load() == [fact]

    def test_requires_start_and_completion(self, analytics):
        assert analytics.track_completion(Task(title="Never started", status=TaskStatus.COMPLETED)) is None
        assert analytics.track_completion(
            Task(title="Open", started_at=datetime(2024, 3, 13, 9, 0))
        ) is None
        assert analytics.load() == []


class TestPatterns:
    """Tests for hourly patterns and energy windows."""

    def test_one_pattern_per_hour(self, seeded):
        patterns = seeded.compute_productivity_patterns()

        assert [p.hour_of_day for p in patterns] == list(range(24))
        assert patterns[9].task_count == 2
        assert patterns[9].avg_completion_time == 30
        assert patterns[9].completion_rate == 1.0
        assert patterns[3].task_count == 0
        assert patterns[3].completion_rate == 0.0

    def test_patterns_are_recomputed_not_cached(self, seeded):
        assert seeded.compute_productivity_patterns() == seeded.compute_productivity_patterns()

        seeded.storage.save(StorageKey.ANALYTICS, [])
        assert all(p.task_count == 0 for p in seeded.compute_productivity_patterns())

    def test_energy_windows(self, seeded):
        windows = seeded.detect_energy_windows()

        assert [(w.start_hour, w.end_hour, w.energy_level) for w in windows] == [
            (9, 10, EnergyLevel.MEDIUM),
            (14, 14, EnergyLevel.LOW),
        ]
        assert windows[0].confidence == pytest.approx(0.2)

    def test_no_history_no_windows(self, analytics):
        assert analytics.detect_energy_windows() == []
        assert analytics.current_energy_level(9) == EnergyLevel.MEDIUM

    def test_current_energy(self, seeded):
        assert seeded.current_energy_level(14) == EnergyLevel.LOW
        assert seeded.current_energy_level(10) == EnergyLevel.MEDIUM
        # Clock is 10:00
        assert seeded.current_energy_level() == EnergyLevel.MEDIUM
        assert seeded.current_energy_level(3) == EnergyLevel.MEDIUM

    def test_optimal_times(self, seeded):
        suggestions = seeded.optimal_time_suggestions(TaskDraft(title="Tidy", priority=Priority.LOW))

        assert [s.hour for s in suggestions] == [9, 10]
        assert all(s.energy_level == EnergyLevel.MEDIUM for s in suggestions)


class TestEstimate:
    """Tests for time estimation."""

    def test_fallback(self, analytics):
        estimate = analytics.estimate_task_time(TaskDraft(title="", priority=Priority.LOW))

        assert estimate.estimated_minutes == 20
        assert estimate.confidence == 0.4
        assert estimate.based_on_similar == []
        assert estimate.task_id == ""

    def test_long_text_is_more_complex(self, analytics):
        draft = TaskDraft(title="Plan", description="x" * 120)
        # medium fallback 45 x 1.4
        assert analytics.estimate_task_time(draft).estimated_minutes == 63

    def test_similar_history(self, clock):
        storage = MemoryStore()
        storage.save(
            StorageKey.ANALYTICS,
            [
                record(9, 50, project="Work"),
                record(11, 70, project="Work"),
                record(15, 500, priority=Priority.LOW),
            ],
        )
        engine = AnalyticsEngine(storage, clock=clock)

        estimate = engine.estimate_task_time(
            TaskDraft(title="Prepare the quarterly board report deck", project="Work")
        )

        assert estimate.estimated_minutes == 60
        assert estimate.confidence == 0.6
        assert estimate.based_on_similar == ["t-9-50", "t-11-70"]
        assert estimate.factors.priority == 1.2
        assert estimate.factors.project_familiarity == 1.3

    def test_half_minute_mean_rounds_up(self, clock):
        storage = MemoryStore()
        storage.save(StorageKey.ANALYTICS, [record(9, 12, project="Work"), record(11, 13, project="Work")])
        engine = AnalyticsEngine(storage, clock=clock)

        estimate = engine.estimate_task_time(
            TaskDraft(title="Prepare the quarterly board report deck", project="Work")
        )

        assert estimate.estimated_minutes == 13

    def test_minimum_estimate(self, clock):
        storage = MemoryStore()
        storage.save(StorageKey.ANALYTICS, [record(9, 1, project="Work")])
        engine = AnalyticsEngine(storage, clock=clock)

        assert engine.estimate_task_time(TaskDraft(title="Tiny", project="Work")).estimated_minutes == 5


class TestTaskOrder:
    """Tests for pending-task ranking."""

    def test_order(self, analytics, clock):
        now = clock()
        urgent = Task(
            title="Fix production outage report",
            priority=Priority.URGENT,
            due_date=now + timedelta(hours=5),
            estimated_minutes=60,
        )
        high = Task(title="Review pull request", priority=Priority.HIGH, estimated_minutes=20)
        low = Task(title="Water plants", priority=Priority.LOW)
        done = Task(title="Finished", status=TaskStatus.COMPLETED)

        ranked = analytics.calculate_task_order([low, done, high, urgent])

        assert [r.task_id for r in ranked] == [urgent.id, high.id, low.id]
        # 4 x 25 + 30 due soon
        assert ranked[0].score == 130
        assert "Due within 24 hours" in ranked[0].reasons
        # 3 x 25 + 10 quick
        assert ranked[1].score == 85
        # 25 + 10 quick (fallback 20 x 0.7)
        assert ranked[2].score == 35

    def test_due_within_three_days(self, analytics, clock):
        task = Task(title="Board deck", due_date=clock() + timedelta(days=2), estimated_minutes=90)
        assert analytics.calculate_task_order([task])[0].score == 65

    def test_low_energy_favours_low_priority(self, seeded, clock):
        clock.now = clock.now.replace(hour=14)
        task = Task(title="Sort receipts into folders", priority=Priority.LOW, estimated_minutes=45)

        recommendation = seeded.calculate_task_order([task])[0]

        assert recommendation.score == 35
        assert "Low energy period - good for simple tasks" in recommendation.reasons
