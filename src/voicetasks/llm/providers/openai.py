"""
OpenAI LLM Provider

OpenAI chat completions. Also serves OpenAI-compatible endpoints such as
OpenRouter through `base_url`.
"""

from __future__ import annotations

import time
from typing import Sequence

import openai
import structlog

from voicetasks.errors import ExternalServiceError
from voicetasks.llm.gateway import ChatCompletion, ChatMessage
from voicetasks.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIProvider(BaseLLMProvider):
    """OpenAI-compatible chat provider."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 30.0,
        name: str | None = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: API key
            model: Model id (gpt-4o-mini, or a vendor/model id on OpenRouter)
            base_url: Alternate OpenAI-compatible endpoint
            timeout: HTTP timeout in seconds
            name: Provider name used in logs and metadata
        """
        super().__init__(api_key=api_key, model=model, timeout=timeout)
        self.base_url = base_url
        if name:
            self.name = name
        self._client: openai.AsyncOpenAI | None = None

    def _get_client(self) -> openai.AsyncOpenAI:
        """Lazy-load OpenAI client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        system_prompt: str | None = None,
        model_id: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ChatCompletion:
        """Run a completion against the chat completions endpoint."""
        start_time = time.perf_counter()

        openai_messages = []
        if system_prompt:
            openai_messages.append({"role": "system", "content": system_prompt})
        openai_messages.extend(msg.to_dict() for msg in messages)

        logger.debug("openai_request", provider=self.name, model=model_id or self.model)

        try:
            response = await self._get_client().chat.completions.create(
                model=model_id or self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=openai_messages,
            )
        except openai.APIStatusError as e:
            raise ExternalServiceError(self.name, e.message, status_code=e.status_code) from e
        except openai.APIError as e:
            raise ExternalServiceError(self.name, str(e)) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.choices:
            raise ExternalServiceError(self.name, "response contained no choices")

        choice = response.choices[0]
        return ChatCompletion(
            text=choice.message.content or "",
            tokens_used=response.usage.total_tokens if response.usage else 0,
            model=response.model,
            provider=self.name,
            latency_ms=latency_ms,
            finish_reason=choice.finish_reason or "stop",
        )
