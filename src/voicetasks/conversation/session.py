"""
Chat Session

One conversation with the user. Quick commands go straight to the command
executor; everything else goes to the assistant, and any tasks it extracts
are stored and linked back to the message they came from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from voicetasks.commands import CommandExecutor, CommandResult, CommandType, VoiceCommandParser
from voicetasks.conversation.assistant import TaskAssistant
from voicetasks.errors import ValidationError
from voicetasks.models import (
    Conversation,
    Message,
    MessageMetadata,
    MessageRole,
    Task,
)
from voicetasks.storage.base import PersistenceAdapter, StorageKey
from voicetasks.tasks.store import TaskStore
from voicetasks.utils.logging import bind_context, get_logger

logger = get_logger(__name__)

TITLE_LENGTH = 50


@dataclass
class Reply:
    """What the session says back for one utterance."""
    message: str
    suggestions: list[str] = field(default_factory=list)
    created: list[Task] = field(default_factory=list)
    command: Optional[CommandResult] = None
    service: str = "local"


class ChatSession:
    """
    A single persisted conversation.

    Args:
        store: Task store for extracted tasks
        assistant: Answers free-form messages
        storage: Where the conversation is saved
        parser: Quick command recognizer
        executor: Runs quick commands (defaults to one over `store`)
        clock: Source of "now"
    """

    def __init__(
        self,
        store: TaskStore,
        assistant: TaskAssistant,
        storage: PersistenceAdapter,
        parser: Optional[VoiceCommandParser] = None,
        executor: Optional[CommandExecutor] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.assistant = assistant
        self.storage = storage
        self.parser = parser or VoiceCommandParser(clock=clock)
        self.executor = executor or CommandExecutor(store)
        self.clock = clock

        now = clock()
        self.conversation = Conversation(created_at=now, updated_at=now)

    @property
    def history(self) -> list[Message]:
        return self.conversation.messages

    async def handle(self, text: str, is_voice: bool = False) -> Reply:
        """
        Respond to one utterance.

        Args:
            text: What the user said or typed
            is_voice: Whether it came from speech recognition

        Returns:
            Reply with the response text and any tasks created
        """
        bind_context(conversation_id=self.conversation.id)
        history = list(self.conversation.messages)
        user_message = self._add(MessageRole.USER, text, is_voice_input=is_voice)

        if self.parser.is_quick_command(text):
            result = self.executor.execute(self.parser.parse_command(text))
            if result.resolved:
                self._add(MessageRole.ASSISTANT, result.message)
                self._save()
                return Reply(
                    message=result.message,
                    created=result.tasks if result.command.type == CommandType.QUICK_TASK else [],
                    command=result,
                    service="command",
                )
            logger.info("command_fallback_to_chat", text=text)

        response = await self.assistant.process_message(text, history)

        created: list[Task] = []
        for draft in response.extracted_tasks:
            draft.extracted_from = user_message.id
            try:
                created.append(self.store.create(draft))
            except ValidationError as e:
                logger.warning("extracted_task_rejected", error=str(e))
        user_message.extracted_tasks = [task.id for task in created]

        self._add(
            MessageRole.ASSISTANT,
            response.message,
            metadata=MessageMetadata(
                confidence=response.metadata.confidence,
                processing_time=response.metadata.processing_time,
            ),
        )
        self._save()

        logger.info(
            "turn_complete",
            service=response.metadata.service,
            intent=response.metadata.intent,
            tasks_created=len(created),
        )
        return Reply(
            message=response.message,
            suggestions=response.suggestions,
            created=created,
            service=response.metadata.service or "local",
        )

    def _add(self, role: MessageRole, content: str, **fields) -> Message:
        now = self.clock()
        message = Message(role=role, content=content, timestamp=now, **fields)
        self.conversation.messages.append(message)
        self.conversation.updated_at = now

        if role == MessageRole.USER and len(self.conversation.messages) == 1:
            title = content.strip()
            if len(title) > TITLE_LENGTH:
                title = title[:TITLE_LENGTH].rstrip() + "..."
            self.conversation.title = title or self.conversation.title
        return message

    def _save(self) -> bool:
        conversations = [
            c for c in self.storage.load(StorageKey.CONVERSATIONS, Conversation)
            if c.id != self.conversation.id
        ]
        conversations.append(self.conversation)
        return self.storage.save(StorageKey.CONVERSATIONS, conversations)
