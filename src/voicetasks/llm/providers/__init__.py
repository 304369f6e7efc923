"""
LLM Providers

Implementations for the supported chat-completion services.
"""

from __future__ import annotations

from voicetasks.llm.providers.base import BaseLLMProvider
from voicetasks.llm.providers.claude import ClaudeProvider
from voicetasks.llm.providers.openai import OPENROUTER_BASE_URL, OpenAIProvider


def get_provider(
    provider_name: str,
    api_key: str,
    model: str | None = None,
    base_url: str | None = None,
    timeout: float = 30.0,
) -> BaseLLMProvider:
    """
    Get a provider by name.

    Args:
        provider_name: 'openai', 'openrouter' or 'claude'
        api_key: API key for the provider
        model: Optional model override
        base_url: Optional endpoint override (OpenAI-compatible providers)
        timeout: HTTP timeout in seconds

    Returns:
        Configured provider instance
    """
    name = provider_name.lower()
    kwargs: dict = {"api_key": api_key, "timeout": timeout}
    if model:
        kwargs["model"] = model

    if name in ("claude", "anthropic"):
        return ClaudeProvider(**kwargs)
    if name in ("openai", "gpt"):
        return OpenAIProvider(base_url=base_url, **kwargs)
    if name == "openrouter":
        return OpenAIProvider(
            base_url=base_url or OPENROUTER_BASE_URL,
            name="openrouter",
            **kwargs,
        )

    raise ValueError(
        f"Unknown provider: {provider_name}. "
        "Available: ['openai', 'openrouter', 'claude']"
    )


__all__ = [
    "BaseLLMProvider",
    "ClaudeProvider",
    "OPENROUTER_BASE_URL",
    "OpenAIProvider",
    "get_provider",
]
