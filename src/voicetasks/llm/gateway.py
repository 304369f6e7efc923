"""
LLM Gateway

Provider-agnostic chat-completion interface.
Supports OpenAI-compatible endpoints (OpenAI, OpenRouter) and Claude
(Anthropic) with retry and automatic fallback.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence

import structlog

from voicetasks.errors import ExternalServiceError

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    """Message roles in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    """A single message sent to a provider."""
    role: Role
    content: str

    def to_dict(self) -> dict:
        """Convert to provider-compatible dict."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class ChatCompletion:
    """Response from a provider."""
    text: str
    tokens_used: int = 0
    model: str = ""
    provider: str = ""
    latency_ms: float = 0
    finish_reason: str = "stop"


class LLMProvider(Protocol):
    """Protocol for chat-completion providers."""

    name: str
    model: str

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        system_prompt: str | None = None,
        model_id: str | None = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> ChatCompletion:
        """Run one completion. Raises ExternalServiceError on failure."""
        ...


class LLMGateway:
    """
    Gateway for chat completions.

    Provides:
    - Provider abstraction
    - Automatic fallback on errors
    - Request/response logging
    - Retry with exponential backoff
    """

    def __init__(
        self,
        primary_provider: LLMProvider,
        fallback_provider: LLMProvider | None = None,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ):
        """
        Initialize the gateway.

        Args:
            primary_provider: Main provider
            fallback_provider: Backup provider if primary fails
            max_retries: Maximum retry attempts per provider
            retry_delay: Initial delay between retries (exponential backoff)
            timeout: Request timeout in seconds
        """
        self.primary = primary_provider
        self.fallback = fallback_provider
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    @property
    def providers(self) -> list[str]:
        names = [self.primary.name]
        if self.fallback:
            names.append(self.fallback.name)
        return names

    async def chat_complete(
        self,
        system_prompt: str | None,
        messages: Sequence[ChatMessage],
        model_id: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatCompletion:
        """
        Run a chat completion.

        Tries the primary provider first, falls back on failure. `model_id`
        applies to the primary only; the fallback uses its own model.

        Raises:
            ExternalServiceError: every provider failed
        """
        logger.debug(
            "llm_request",
            message_count=len(messages),
            has_system=system_prompt is not None,
            max_tokens=max_tokens,
        )

        try:
            completion = await self._try_provider(
                self.primary, messages, system_prompt, model_id, max_tokens, temperature
            )
        except ExternalServiceError as e:
            if not self.fallback:
                logger.error("llm_all_providers_failed", error=str(e))
                raise
            logger.warning("llm_primary_failed", provider=self.primary.name, error=str(e))
            try:
                completion = await self._try_provider(
                    self.fallback, messages, system_prompt, None, max_tokens, temperature
                )
            except ExternalServiceError as fallback_error:
                logger.error("llm_all_providers_failed", error=str(fallback_error))
                raise

        logger.info(
            "llm_response",
            provider=completion.provider,
            model=completion.model,
            tokens=completion.tokens_used,
            latency_ms=round(completion.latency_ms, 1),
        )
        return completion

    async def _try_provider(
        self,
        provider: LLMProvider,
        messages: Sequence[ChatMessage],
        system_prompt: str | None,
        model_id: str | None,
        max_tokens: int,
        temperature: float,
    ) -> ChatCompletion:
        """Try a provider with retries."""
        last_error: ExternalServiceError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return await asyncio.wait_for(
                    provider.complete(
                        messages=messages,
                        system_prompt=system_prompt,
                        model_id=model_id,
                        max_tokens=max_tokens,
                        temperature=temperature,
                    ),
                    timeout=self.timeout,
                )

            except asyncio.TimeoutError:
                last_error = ExternalServiceError(
                    provider.name, f"Request timed out after {self.timeout}s"
                )
                logger.warning("llm_timeout", provider=provider.name, attempt=attempt + 1)
            except ExternalServiceError as e:
                last_error = e
                logger.warning(
                    "llm_error",
                    provider=provider.name,
                    attempt=attempt + 1,
                    error=str(e),
                    status=e.status_code,
                )

            # Exponential backoff
            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * (2 ** attempt))

        assert last_error is not None
        raise last_error
