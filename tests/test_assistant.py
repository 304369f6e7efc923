"""
Tests for the LLM gateway, the remote delegate and assistant routing.
"""

import asyncio
import json
import random
from datetime import datetime

import pytest

from voicetasks.config import LLMConfig
from voicetasks.conversation import LocalAssistant, TaskAssistant
from voicetasks.errors import ExternalServiceError
from voicetasks.llm import (
    ChatCompletion,
    ChatMessage,
    LLMGateway,
    RemoteModelDelegate,
    Role,
    build_delegate,
    build_gateway,
)
from voicetasks.llm.delegate import DEGRADED_MESSAGE
from voicetasks.models import Message, MessageRole, Priority, UserMemory


class FakeProvider:
    """Provider that replays scripted replies or errors."""

    def __init__(self, name: str, replies: list, model: str = "fake-model"):
        self.name = name
        self.model = model
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def complete(self, messages, system_prompt=None, model_id=None, max_tokens=1000, temperature=0.7):
        self.calls.append(
            {"messages": list(messages), "system_prompt": system_prompt, "model_id": model_id}
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatCompletion(text=reply, tokens_used=12, model=self.model, provider=self.name)


class SlowProvider(FakeProvider):
    async def complete(self, messages, **kwargs):
        await asyncio.sleep(1)
        return ChatCompletion(text="late")


def failure(name: str = "fake") -> ExternalServiceError:
    return ExternalServiceError(name, "boom", status_code=500)


def gateway_for(*providers, max_retries: int = 0) -> LLMGateway:
    primary = providers[0]
    fallback = providers[1] if len(providers) > 1 else None
    return LLMGateway(primary, fallback, max_retries=max_retries, retry_delay=0)


class TestGateway:
    """Tests for retry and fallback."""

    @pytest.mark.asyncio
    async def test_primary_success(self):
        primary = FakeProvider("primary", ["hello"])
        completion = await gateway_for(primary).chat_complete("sys", [ChatMessage(Role.USER, "hi")])

        assert completion.text == "hello"
        assert primary.calls[0]["system_prompt"] == "sys"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        primary = FakeProvider("primary", [failure(), "second try"])
        completion = await gateway_for(primary, max_retries=1).chat_complete(None, [])

        assert completion.text == "second try"
        assert len(primary.calls) == 2

    @pytest.mark.asyncio
    async def test_fallback(self):
        primary = FakeProvider("primary", [failure()])
        fallback = FakeProvider("fallback", ["from fallback"])

        completion = await gateway_for(primary, fallback).chat_complete(None, [], model_id="big")

        assert completion.provider == "fallback"
        # The requested model only applies to the primary
        assert fallback.calls[0]["model_id"] is None

    @pytest.mark.asyncio
    async def test_all_fail(self):
        gateway = gateway_for(FakeProvider("a", [failure("a")]), FakeProvider("b", [failure("b")]))
        with pytest.raises(ExternalServiceError) as excinfo:
            await gateway.chat_complete(None, [])
        assert excinfo.value.provider == "b"

    @pytest.mark.asyncio
    async def test_timeout(self):
        gateway = LLMGateway(SlowProvider("slow", []), max_retries=0, timeout=0.01)
        with pytest.raises(ExternalServiceError, match="timed out"):
            await gateway.chat_complete(None, [])

    def test_providers(self):
        gateway = gateway_for(FakeProvider("a", []), FakeProvider("b", []))
        assert gateway.providers == ["a", "b"]


class TestBuild:
    """Tests for config-driven construction."""

    def test_disabled(self):
        assert build_gateway(LLMConfig(enabled=False)) is None
        assert build_delegate(LLMConfig(enabled=False)) is None

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("VOICETASKS_TEST_KEY", raising=False)
        config = LLMConfig(enabled=True, api_key_env="VOICETASKS_TEST_KEY")
        assert build_gateway(config) is None


class TestDelegate:
    """Tests for the remote delegate."""

    @pytest.mark.asyncio
    async def test_json_reply(self):
        reply = json.dumps(
            {
                "message": "On it!",
                "tasks": [
                    {"title": "Call the bank", "priority": "high", "due_date": "2024-03-15", "tags": ["call"]},
                    {"title": ""},
                    {"title": "Bad priority", "priority": "whenever"},
                ],
            }
        )
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [reply])))

        response = await delegate.process_message("I need to call the bank before Friday")

        assert response.message == "On it!"
        assert [t.title for t in response.extracted_tasks] == ["Call the bank"]
        task = response.extracted_tasks[0]
        assert task.priority == Priority.HIGH
        assert task.due_date == datetime(2024, 3, 15)
        assert task.id
        assert response.metadata.service == "remote"
        assert response.metadata.tokens_used == 12
        assert response.metadata.intent == "task_creation"
        assert response.degraded is False

    @pytest.mark.asyncio
    async def test_fenced_json(self):
        reply = '```json\n{"message": "Sure", "tasks": []}\n```'
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [reply])))

        response = await delegate.process_message("hello there")

        assert response.message == "Sure"

    @pytest.mark.asyncio
    async def test_tasks_not_a_list(self):
        reply = json.dumps({"message": "ok", "tasks": 5})
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [reply])))

        response = await delegate.process_message("hello there")

        assert response.message == "ok"
        assert response.extracted_tasks == []

    @pytest.mark.asyncio
    async def test_offset_due_date_is_naive(self, store):
        reply = json.dumps(
            {"message": "Noted", "tasks": [{"title": "Send invoice", "due_date": "2024-03-14T17:00:00Z"}]}
        )
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [reply])))

        response = await delegate.process_message("I need to send the invoice tomorrow")
        draft = response.extracted_tasks[0]

        assert draft.due_date.tzinfo is None
        task = store.create(draft)
        assert store.overdue() == []
        assert task.is_overdue(datetime(2024, 3, 16)) is True

    @pytest.mark.asyncio
    async def test_plain_text_reply(self):
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", ["Just words."])))

        response = await delegate.process_message("hello there")

        assert response.message == "Just words."
        assert response.extracted_tasks == []

    @pytest.mark.asyncio
    async def test_failure_is_degraded(self):
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [failure()])))

        response = await delegate.process_message("hello there")

        assert response.degraded
        assert response.message == DEGRADED_MESSAGE
        assert response.metadata.confidence == 0.0
        assert response.extracted_tasks == []

    def test_history_window(self):
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [])), history_window=2)
        history = [
            Message(role=MessageRole.USER, content="one"),
            Message(role=MessageRole.ASSISTANT, content="two"),
            Message(role=MessageRole.USER, content="three"),
        ]

        messages = delegate.build_messages(history, "four")

        assert [m.content for m in messages] == ["two", "three", "four"]
        assert messages[0].role == Role.ASSISTANT

    def test_system_prompt_uses_memory(self):
        delegate = RemoteModelDelegate(gateway_for(FakeProvider("p", [])), system_prompt="Be brief.")
        memory = UserMemory()
        memory.work_patterns.common_projects = ["Garden"]

        prompt = delegate.build_system_prompt(memory)

        assert prompt.startswith("Be brief.")
        assert "Common projects: Garden" in prompt

    def test_suggestions(self):
        suggestions = RemoteModelDelegate.suggestions("set up a meeting")
        assert len(suggestions) == 3

    def test_confidence(self):
        assert RemoteModelDelegate.confidence("a longer utterance", 2) == 0.9
        assert RemoteModelDelegate.confidence("short", 0) == 0.5


class TestTaskAssistant:
    """Tests for local/remote routing."""

    @pytest.fixture
    def local(self, clock):
        from voicetasks.extraction import TaskExtractor

        return LocalAssistant(rng=random.Random(0), extractor=TaskExtractor(clock=clock))

    @pytest.mark.asyncio
    async def test_local_only(self, local):
        assistant = TaskAssistant(local)

        response = await assistant.process_message("I need to water the plants")

        assert assistant.remote_enabled is False
        assert response.metadata.service == "local"
        assert response.metadata.intent == "task_creation"
        assert [t.title for t in response.extracted_tasks] == ["Water the plants"]
        assert response.extracted_tasks[0].id

    @pytest.mark.asyncio
    async def test_remote_preferred(self, local):
        reply = json.dumps({"message": "Remote here", "tasks": []})
        remote = RemoteModelDelegate(gateway_for(FakeProvider("p", [reply])))

        response = await TaskAssistant(local, remote).process_message("hello there")

        assert response.message == "Remote here"
        assert response.metadata.service == "remote"

    @pytest.mark.asyncio
    async def test_degraded_remote_falls_back(self, local):
        remote = RemoteModelDelegate(gateway_for(FakeProvider("p", [failure()])))

        response = await TaskAssistant(local, remote).process_message("I need to water the plants")

        assert response.metadata.service == "local"
        assert len(response.extracted_tasks) == 1


class TestProviders:
    """Tests for provider selection (clients are created lazily, no network)."""

    def test_openrouter(self):
        from voicetasks.llm.providers import OPENROUTER_BASE_URL, get_provider

        provider = get_provider("openrouter", "key", model="vendor/model")

        assert provider.name == "openrouter"
        assert provider.base_url == OPENROUTER_BASE_URL
        assert provider.model == "vendor/model"

    def test_unknown(self):
        from voicetasks.llm.providers import get_provider

        with pytest.raises(ValueError):
            get_provider("carrier-pigeon", "key")

    def test_gateway_with_fallback(self, monkeypatch):
        monkeypatch.setenv("VOICETASKS_TEST_KEY", "a")
        monkeypatch.setenv("VOICETASKS_TEST_FALLBACK", "b")
        config = LLMConfig(
            enabled=True,
            api_key_env="VOICETASKS_TEST_KEY",
            fallback_provider="claude",
            fallback_api_key_env="VOICETASKS_TEST_FALLBACK",
        )

        gateway = build_gateway(config)

        assert gateway.providers == ["openai", "claude"]
        assert gateway.fallback.model == config.claude_model
        assert isinstance(build_delegate(config), RemoteModelDelegate)
