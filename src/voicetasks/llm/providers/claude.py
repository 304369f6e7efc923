"""
Claude (Anthropic) LLM Provider

Implementation for Anthropic's Claude models.
"""

from __future__ import annotations

import time
from typing import Sequence

import anthropic
import structlog

from voicetasks.errors import ExternalServiceError
from voicetasks.llm.gateway import ChatCompletion, ChatMessage, Role
from voicetasks.llm.providers.base import BaseLLMProvider

logger = structlog.get_logger(__name__)


class ClaudeProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    name = "claude"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 30.0,
    ):
        """
        Initialize Claude provider.

        Args:
            api_key: Anthropic API key
            model: Claude model id
            timeout: HTTP timeout in seconds
        """
        super().__init__(api_key=api_key, model=model, timeout=timeout)
        self._client: anthropic.AsyncAnthropic | None = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Lazy-load Anthropic client."""
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
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
        """Run a completion using Claude."""
        start_time = time.perf_counter()

        # Claude takes the system prompt separately
        anthropic_messages = []
        for msg in messages:
            if msg.role == Role.SYSTEM:
                if system_prompt is None:
                    system_prompt = msg.content
                continue
            anthropic_messages.append(msg.to_dict())

        kwargs = {
            "model": model_id or self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": anthropic_messages,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        logger.debug("claude_request", model=kwargs["model"], messages=len(anthropic_messages))

        try:
            response = await self._get_client().messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            raise ExternalServiceError(self.name, e.message, status_code=e.status_code) from e
        except anthropic.APIError as e:
            raise ExternalServiceError(self.name, str(e)) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = response.usage
        return ChatCompletion(
            text=text,
            tokens_used=(usage.input_tokens + usage.output_tokens) if usage else 0,
            model=response.model,
            provider=self.name,
            latency_ms=latency_ms,
            finish_reason=response.stop_reason or "stop",
        )
