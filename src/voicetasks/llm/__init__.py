"""
LLM Gateway Module

Provider-agnostic chat completions and the remote model delegate.
"""

from __future__ import annotations

from voicetasks.config import LLMConfig
from voicetasks.llm.delegate import RemoteModelDelegate
from voicetasks.llm.gateway import ChatCompletion, ChatMessage, LLMGateway, Role
from voicetasks.llm.providers import ClaudeProvider, OpenAIProvider, get_provider
from voicetasks.utils.logging import get_logger

logger = get_logger(__name__)


def build_gateway(config: LLMConfig) -> LLMGateway | None:
    """
    Build a gateway from config.

    Returns None when the remote model is disabled or has no API key.
    """
    if not config.enabled:
        return None

    api_key = config.api_key
    if not api_key:
        logger.warning("llm_api_key_missing", env=config.api_key_env)
        return None

    model = config.claude_model if config.provider == "claude" else config.model
    primary = get_provider(
        config.provider, api_key, model=model, base_url=config.base_url, timeout=config.timeout
    )

    fallback = None
    if config.fallback_provider and config.fallback_api_key:
        fallback_model = (
            config.claude_model if config.fallback_provider == "claude" else config.model
        )
        fallback = get_provider(
            config.fallback_provider,
            config.fallback_api_key,
            model=fallback_model,
            timeout=config.timeout,
        )

    gateway = LLMGateway(
        primary,
        fallback,
        max_retries=config.max_retries,
        timeout=config.timeout,
    )
    logger.info("llm_gateway_ready", providers=gateway.providers)
    return gateway


def build_delegate(config: LLMConfig) -> RemoteModelDelegate | None:
    """Remote delegate for the configured gateway, or None when disabled."""
    gateway = build_gateway(config)
    if gateway is None:
        return None
    return RemoteModelDelegate(
        gateway,
        model_id=None,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        history_window=config.history_window,
        system_prompt=config.system_prompt,
    )


__all__ = [
    "ChatCompletion",
    "ChatMessage",
    "ClaudeProvider",
    "LLMGateway",
    "OpenAIProvider",
    "RemoteModelDelegate",
    "Role",
    "build_delegate",
    "build_gateway",
    "get_provider",
]
