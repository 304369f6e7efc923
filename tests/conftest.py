"""
Shared fixtures for voicetasks tests.
"""

from datetime import datetime, timedelta

import pytest

from voicetasks.analytics import AnalyticsEngine
from voicetasks.notifications import NotificationKind, NotificationService
from voicetasks.storage import MemoryStore
from voicetasks.tasks import TaskStore


class FixedClock:
    """Settable clock for deterministic timers and due dates."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    """Notifier that remembers what it was asked to show."""

    def __init__(self):
        self.notifications: list[tuple[str, str, NotificationKind]] = []
        self.spoken: list[str] = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)

    def notify(self, title: str, body: str, kind: NotificationKind) -> None:
        self.notifications.append((title, body, kind))


# Wednesday
NOW = datetime(2024, 3, 13, 10, 0, 0)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def storage() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def notifications(notifier) -> NotificationService:
    return NotificationService(notifier)


@pytest.fixture
def analytics(storage, clock) -> AnalyticsEngine:
    return AnalyticsEngine(storage, clock=clock)


@pytest.fixture
def store(storage, analytics, clock, notifications) -> TaskStore:
    return TaskStore(storage, analytics, clock=clock, notifications=notifications)
