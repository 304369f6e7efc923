"""
Assistants

LocalAssistant answers from pattern extraction and canned responses.
TaskAssistant routes a turn to the remote model when one is configured and
falls back to the local assistant when it is not, or when the remote reply
is degraded.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Optional, Sequence

import structlog

from voicetasks.conversation.responses import ResponseGenerator
from voicetasks.extraction.extractor import TaskExtractor
from voicetasks.llm.delegate import RemoteModelDelegate
from voicetasks.models import AIResponse, Message, ResponseMetadata, UserMemory, new_id

logger = structlog.get_logger(__name__)


class LocalAssistant:
    """Offline assistant: extractor plus response generator."""

    def __init__(
        self,
        user_memory: Optional[UserMemory] = None,
        rng: Optional[random.Random] = None,
        extractor: Optional[TaskExtractor] = None,
        theme_window: int = 6,
    ):
        self.user_memory = user_memory or UserMemory()
        self.extractor = extractor or TaskExtractor(self.user_memory)
        self.responses = ResponseGenerator(rng, self.user_memory, theme_window)

    def process_message(
        self,
        utterance: str,
        history: Sequence[Message] = (),
    ) -> AIResponse:
        start = time.perf_counter()

        result = self.extractor.extract(utterance, history)
        for draft in result.tasks:
            draft.id = new_id()

        message = self.responses.generate(utterance, result.intent, result.tasks, history)

        return AIResponse(
            message=message,
            extracted_tasks=result.tasks,
            suggestions=self.responses.suggestions(result.intent),
            metadata=ResponseMetadata(
                confidence=result.confidence,
                processing_time=round((time.perf_counter() - start) * 1000, 1),
                intent=result.intent.value,
                service="local",
            ),
        )


class TaskAssistant:
    """
    Chooses between the remote delegate and the local assistant.

    The caller always gets a usable AIResponse; metadata.service says which
    path produced it.
    """

    def __init__(
        self,
        local: LocalAssistant,
        remote: Optional[RemoteModelDelegate] = None,
        memory_provider: Optional[Callable[[], UserMemory]] = None,
    ):
        self.local = local
        self.remote = remote
        self._memory_provider = memory_provider or (lambda: local.user_memory)

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    async def process_message(
        self,
        utterance: str,
        history: Sequence[Message] = (),
    ) -> AIResponse:
        if self.remote is not None:
            response = await self.remote.process_message(
                utterance, history, self._memory_provider()
            )
            if not response.degraded:
                return response
            logger.info("remote_degraded_fallback", error=response.metadata.error)

        response = self.local.process_message(utterance, history)
        logger.debug(
            "local_response",
            intent=response.metadata.intent,
            tasks=len(response.extracted_tasks),
        )
        return response
