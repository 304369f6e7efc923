"""
Remote Model Delegate

Answers a chat turn with a remote chat-completion model. Produces the same
AIResponse shape as the local assistant; failures come back as a degraded
response instead of an exception.
"""

from __future__ import annotations

import json
import re
import time
from datetime import datetime
from typing import Any, Optional, Sequence

import structlog
from pydantic import ValidationError as SchemaError

from voicetasks.errors import ExternalServiceError
from voicetasks.extraction.intents import classify_intent
from voicetasks.llm.gateway import ChatMessage, LLMGateway, Role
from voicetasks.models import (
    AIResponse,
    Message,
    MessageRole,
    ResponseMetadata,
    TaskDraft,
    UserMemory,
    new_id,
)
from voicetasks.utils.dates import parse_generic_date

logger = structlog.get_logger(__name__)


DEGRADED_MESSAGE = (
    "I'm having trouble connecting to the AI service right now. "
    "Please try again in a moment."
)
DEGRADED_SUGGESTIONS = ["Check your internet connection", "Try again in a few moments"]

BASE_PROMPT = """You are an intelligent task management assistant. Your primary role is to help users organize their work and life through natural conversation.

CORE RESPONSIBILITIES:
1. Extract actionable tasks from user conversations
2. Provide helpful, encouraging responses about productivity
3. Remember user patterns and preferences
4. Suggest optimizations for their workflow

TASK EXTRACTION GUIDELINES:
- Look for action items, deadlines, commitments, and goals
- Identify priority levels based on urgency words
- Extract due dates from temporal references
- Create clear, actionable task titles

USER CONTEXT:
- Preferred working hours: {hours}
- Common projects: {projects}
- Communication style: {style}

RESPONSE FORMAT:
Reply with a single JSON object and nothing else:
{{"message": "<your reply to the user>", "tasks": [{{"title": "...", "description": "...", "priority": "low|medium|high|urgent", "due_date": "YYYY-MM-DD or null", "project": "... or null", "tags": ["..."]}}]}}
Use an empty "tasks" list when the user did not mention anything actionable.

RESPONSE STYLE: Be encouraging, practical, and focused on helping them achieve their goals."""

SUGGESTIONS = [
    "Break this down into smaller tasks",
    "Set a specific deadline for better focus",
    "Consider the priority level of this task",
]

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class RemoteModelDelegate:
    """
    Chat turn handler backed by the LLM gateway.

    The model is asked for a JSON reply carrying both the message text and
    any tasks. A reply that is not JSON is used verbatim as the message,
    with no tasks.
    """

    def __init__(
        self,
        gateway: LLMGateway,
        model_id: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        history_window: int = 10,
        system_prompt: str | None = None,
    ):
        self.gateway = gateway
        self.model_id = model_id
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.history_window = history_window
        self.system_prompt = system_prompt

    def build_system_prompt(self, user_memory: UserMemory) -> str:
        prompt = BASE_PROMPT.format(
            hours=" - ".join(user_memory.work_patterns.preferred_working_hours),
            projects=", ".join(user_memory.work_patterns.common_projects),
            style=user_memory.learning_data.communication_style or "Professional yet friendly",
        )
        return f"{self.system_prompt}\n\n{prompt}" if self.system_prompt else prompt

    def build_messages(self, history: Sequence[Message], utterance: str) -> list[ChatMessage]:
        recent = history[-self.history_window:] if self.history_window > 0 else []
        messages = [
            ChatMessage(
                role=Role.USER if m.role == MessageRole.USER else Role.ASSISTANT,
                content=m.content,
            )
            for m in recent
        ]
        messages.append(ChatMessage(role=Role.USER, content=utterance))
        return messages

    async def process_message(
        self,
        utterance: str,
        history: Sequence[Message] = (),
        user_memory: Optional[UserMemory] = None,
    ) -> AIResponse:
        """
        Answer one user turn via the remote model.

        Never raises for service failures; see `degraded`.
        """
        start = time.perf_counter()
        memory = user_memory or UserMemory()

        try:
            completion = await self.gateway.chat_complete(
                system_prompt=self.build_system_prompt(memory),
                messages=self.build_messages(history, utterance),
                model_id=self.model_id,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except ExternalServiceError as e:
            logger.warning("remote_model_failed", error=str(e), status=e.status_code)
            return self.degraded(str(e), _elapsed_ms(start))

        message, tasks = self.parse_reply(completion.text)
        return AIResponse(
            message=message,
            extracted_tasks=tasks,
            suggestions=self.suggestions(utterance),
            metadata=ResponseMetadata(
                confidence=self.confidence(utterance, len(tasks)),
                processing_time=_elapsed_ms(start),
                intent=classify_intent(utterance).value,
                service="remote",
                model=completion.model or self.model_id,
                tokens_used=completion.tokens_used,
            ),
        )

    @staticmethod
    def degraded(error: str, processing_time: float = 0.0) -> AIResponse:
        """The reply used when the remote service cannot be reached."""
        return AIResponse(
            message=DEGRADED_MESSAGE,
            extracted_tasks=[],
            suggestions=list(DEGRADED_SUGGESTIONS),
            metadata=ResponseMetadata(
                confidence=0.0,
                processing_time=processing_time,
                intent="error",
                error=error,
                service="remote",
            ),
        )

    def parse_reply(self, text: str) -> tuple[str, list[TaskDraft]]:
        """Split a model reply into message text and task drafts."""
        stripped = _FENCE.sub("", text.strip())
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            return text.strip(), []

        if not isinstance(payload, dict):
            return text.strip(), []

        message = str(payload.get("message") or "").strip() or text.strip()
        raw_tasks = payload.get("tasks")
        if not isinstance(raw_tasks, list):
            raw_tasks = []

        tasks: list[TaskDraft] = []
        for raw in raw_tasks:
            draft = self._to_draft(raw)
            if draft is not None:
                tasks.append(draft)
        return message, tasks

    @staticmethod
    def _to_draft(raw: Any) -> TaskDraft | None:
        if not isinstance(raw, dict) or not str(raw.get("title") or "").strip():
            return None
        fields = {k: v for k, v in raw.items() if v is not None and k in TaskDraft.model_fields}
        if isinstance(fields.get("due_date"), str):
            due = parse_generic_date(fields.pop("due_date"), datetime.now())
            if due is not None:
                fields["due_date"] = due
        fields["id"] = new_id()
        try:
            return TaskDraft.model_validate(fields)
        except SchemaError as e:
            logger.debug("remote_task_rejected", title=raw.get("title"), errors=e.error_count())
            return None

    @staticmethod
    def suggestions(utterance: str) -> list[str]:
        suggestions = list(SUGGESTIONS)
        lowered = utterance.lower()
        if "meeting" in lowered:
            suggestions.append("Don't forget to send calendar invites")
        if "email" in lowered:
            suggestions.append("Draft the email first to save time")
        return suggestions[:3]

    @staticmethod
    def confidence(utterance: str, task_count: int) -> float:
        value = 0.7 + min(task_count * 0.1, 0.3)
        if len(utterance) < 10:
            value -= 0.2
        return round(max(0.0, min(1.0, value)), 2)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)
