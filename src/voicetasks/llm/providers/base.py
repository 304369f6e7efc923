"""
Base LLM Provider

Abstract base class for chat-completion providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from voicetasks.llm.gateway import ChatCompletion, ChatMessage


class BaseLLMProvider(ABC):
    """Base class for providers."""

    name: str = "base"

    def __init__(self, api_key: str, model: str, timeout: float = 30.0):
        """
        Initialize provider.

        Args:
            api_key: API key for the provider
            model: Default model identifier
            timeout: HTTP timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[ChatMessage],
        system_prompt: str | None = None,
        model_id: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ChatCompletion:
        """Run one completion. Raises ExternalServiceError on failure."""
        pass
