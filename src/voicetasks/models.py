"""
Domain Models

Pydantic models for tasks, time entries, analytics facts, conversations,
projects, templates and user preferences/memory.

Every persisted entity is a pydantic model so a collection can be written as
JSON and read back with the same ids and timestamps. Datetimes are naive
local time throughout.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def new_id() -> str:
    """Generate an opaque entity id."""
    return str(uuid4())


class Priority(str, Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHTS[self]


PRIORITY_WEIGHTS = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
    Priority.URGENT: 4,
}


class TaskStatus(str, Enum):
    """Task lifecycle status."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _dedupe(values: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


class TimeEntry(BaseModel):
    """A closed work session. Never mutated once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    start_time: datetime
    end_time: datetime
    duration: int = 0  # minutes

    @model_validator(mode="after")
    def check_order(self) -> "TimeEntry":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self

    @classmethod
    def close(cls, start_time: datetime, end_time: datetime) -> "TimeEntry":
        """Create an entry for a session, rounding its length to whole minutes."""
        minutes = round((end_time - start_time).total_seconds() / 60)
        return cls(start_time=start_time, end_time=end_time, duration=minutes)


class TaskDraft(BaseModel):
    """
    A partial task.

    Produced by extraction, the remote model and voice commands; turned into
    a Task by the task store.
    """

    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[datetime] = None
    project: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    extracted_from: Optional[str] = None
    estimated_minutes: Optional[int] = None

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        return _dedupe(v)


class Task(BaseModel):
    """A unit of work."""

    id: str = Field(default_factory=new_id)
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[datetime] = None
    project: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    extracted_from: Optional[str] = None  # Message id, may dangle

    # Time tracking
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_entries: list[TimeEntry] = Field(default_factory=list)
    total_time_spent: int = 0
    is_active_timer: bool = False
    current_session_start: Optional[datetime] = None

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        return _dedupe(v)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be empty")
        return v

    def __repr__(self) -> str:
        return f"<Task {self.title!r} [{self.status.value}]>"

    def is_overdue(self, now: datetime) -> bool:
        """Past due and not completed."""
        return (
            self.due_date is not None
            and self.due_date < now
            and self.status != TaskStatus.COMPLETED
        )


class TaskAnalytics(BaseModel):
    """A fact recorded once per completed task. Append-only."""

    id: str = Field(default_factory=new_id)
    task_id: str
    actual_minutes: int
    completed_at: datetime
    priority: Priority
    tags: list[str] = Field(default_factory=list)
    project: Optional[str] = None
    hour_of_day: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageMetadata(BaseModel):
    confidence: Optional[float] = None
    processing_time: Optional[float] = None


class Message(BaseModel):
    """One chat turn."""

    id: str = Field(default_factory=new_id)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    is_voice_input: bool = False
    extracted_tasks: list[str] = Field(default_factory=list)  # Task ids, may dangle
    metadata: Optional[MessageMetadata] = None


class Conversation(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = "New conversation"
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    summary: Optional[str] = None


class Project(BaseModel):
    """A project or area of focus."""

    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None
    color: str = "#3b82f6"
    task_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    is_active: bool = True


class TaskTemplate(BaseModel):
    """A reusable task shape."""

    id: str = Field(default_factory=new_id)
    name: str
    title: str
    task_description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    project: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    estimated_minutes: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# User preferences and memory
# =============================================================================


class VoiceSettings(BaseModel):
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 0.8
    voice: Optional[str] = None


class AISettings(BaseModel):
    response_style: str = "friendly"  # concise, detailed or friendly
    task_extraction_sensitivity: str = "medium"
    system_prompt: Optional[str] = None


class NotificationSettings(BaseModel):
    enabled: bool = False
    daily_agenda: bool = True
    task_reminders: bool = True
    celebrate_completions: bool = True
    smart_suggestions: bool = True


class UserPreferences(BaseModel):
    voice_enabled: bool = True
    auto_speak: bool = True
    theme: str = "system"
    language: str = "en-US"
    voice_settings: VoiceSettings = Field(default_factory=VoiceSettings)
    ai_settings: AISettings = Field(default_factory=AISettings)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)


class WorkPatterns(BaseModel):
    preferred_working_hours: list[str] = Field(default_factory=lambda: ["9:00", "17:00"])
    common_projects: list[str] = Field(
        default_factory=lambda: ["Personal", "Work", "Learning"]
    )
    frequent_tasks: list[str] = Field(default_factory=list)


class ContextualInfo(BaseModel):
    current_projects: list[str] = Field(default_factory=list)
    recent_topics: list[str] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)


class Feedback(BaseModel):
    action: str
    feedback: str  # positive or negative
    timestamp: datetime = Field(default_factory=datetime.now)


class LearningData(BaseModel):
    task_completion_patterns: dict[str, float] = Field(default_factory=dict)
    communication_style: str = "professional"
    feedback_history: list[Feedback] = Field(default_factory=list)


class UserMemory(BaseModel):
    """What the assistant has learned about the user."""

    work_patterns: WorkPatterns = Field(default_factory=WorkPatterns)
    contextual_info: ContextualInfo = Field(default_factory=ContextualInfo)
    learning_data: LearningData = Field(default_factory=LearningData)


# =============================================================================
# Assistant output
# =============================================================================


class ResponseMetadata(BaseModel):
    confidence: float = 0.0
    processing_time: float = 0.0  # milliseconds
    intent: str = "general_conversation"
    error: Optional[str] = None
    service: Optional[str] = None  # remote or local
    model: Optional[str] = None
    tokens_used: Optional[int] = None


class AIResponse(BaseModel):
    """What either assistant returns for one utterance."""

    message: str
    extracted_tasks: list[TaskDraft] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    @property
    def degraded(self) -> bool:
        return self.metadata.error is not None
