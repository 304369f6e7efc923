"""
Tests for canned response generation.
"""

import random

from voicetasks.conversation import ResponseGenerator, detect_themes
from voicetasks.conversation.responses import RESPONSE_POOLS, ResponseVariant
from voicetasks.extraction import ConversationIntent
from voicetasks.models import Message, MessageRole, Priority, TaskDraft, UserMemory


def user(content: str) -> Message:
    return Message(role=MessageRole.USER, content=content)


class TestThemes:
    """Tests for theme detection over recent history."""

    def test_detects_in_table_order(self):
        history = [user("we have a meeting about the deadline"), user("and a design review")]
        assert detect_themes(history) == ["project", "deadline", "meeting", "review"]

    def test_window(self):
        history = [user("the project plan")] + [user("nothing here")] * 6
        assert detect_themes(history, window=6) == []
        assert detect_themes(history, window=7) == ["project", "planning"]

    def test_zero_window(self):
        assert detect_themes([user("project")], window=0) == []


class TestVariant:
    """Tests for themed rendering."""

    def test_plain_without_theme(self):
        variant = ResponseVariant(plain="Plain", themed="Themed {theme}", theme="project")
        assert variant.render([]) == "Plain"
        assert variant.render(["project"]) == "Themed project"

    def test_no_themed_text(self):
        assert ResponseVariant(plain="Only").render(["project"]) == "Only"


class TestGenerate:
    """Tests for composed replies."""

    def test_seeded_rng_is_reproducible(self):
        first = ResponseGenerator(random.Random(7)).generate("hi", ConversationIntent.CASUAL_CONVERSATION, [])
        second = ResponseGenerator(random.Random(7)).generate("hi", ConversationIntent.CASUAL_CONVERSATION, [])
        assert first == second

    def test_reply_comes_from_pool(self):
        generator = ResponseGenerator(random.Random(1))
        reply = generator.generate("hello", ConversationIntent.CASUAL_CONVERSATION, [])
        plains = {v.plain for v in RESPONSE_POOLS[ConversationIntent.CASUAL_CONVERSATION]}
        assert reply in plains

    def test_unknown_intent_uses_casual_pool(self):
        generator = ResponseGenerator(random.Random(1))
        reply = generator.generate("hmm", ConversationIntent.GENERAL_CONVERSATION, [])
        plains = {v.plain for v in RESPONSE_POOLS[ConversationIntent.CASUAL_CONVERSATION]}
        assert reply in plains

    def test_single_task_clause(self):
        clause = ResponseGenerator.task_clause([TaskDraft(title="Pay rent", priority=Priority.URGENT)])
        assert clause == 'I found 1 task that I can add to your list. "Pay rent" is marked urgent priority.'

    def test_medium_task_clause(self):
        clause = ResponseGenerator.task_clause([TaskDraft(title="Pay rent")])
        assert clause == 'I found 1 task that I can add to your list. "Pay rent".'

    def test_several_tasks_clause(self):
        clause = ResponseGenerator.task_clause([TaskDraft(title="A"), TaskDraft(title="B")])
        assert clause == "I found 2 tasks that I can add to your list."

    def test_project_clause(self):
        memory = UserMemory()
        memory.contextual_info.current_projects = ["Garden", "Website"]
        generator = ResponseGenerator(random.Random(3), memory)

        reply = generator.generate(
            "let's talk about the website",
            ConversationIntent.PROJECT_DISCUSSION,
            [TaskDraft(title="Fix nav", project="Website redesign")],
        )

        assert reply.endswith("I can see this connects to your Website project work.")

    def test_project_clause_without_task_projects(self):
        clause = ResponseGenerator.project_clause(["Garden"], [])
        assert clause == "This might relate to your ongoing Garden project."

    def test_suggestions(self):
        assert len(ResponseGenerator.suggestions(ConversationIntent.TASK_CREATION)) == 3
        assert ResponseGenerator.suggestions(ConversationIntent.HELP_REQUEST) == []
