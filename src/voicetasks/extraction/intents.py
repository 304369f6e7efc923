"""
Intent Classification

Ordered table of intent rules, first match wins. Order is significant:
task creation is tested before casual talk and help requests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class ConversationIntent(str, Enum):
    """What the user is trying to do in a chat turn."""

    TASK_CREATION = "task_creation"
    TASK_QUERY = "task_query"
    TASK_UPDATE = "task_update"
    PROJECT_DISCUSSION = "project_discussion"
    STATUS_CHECK = "status_check"
    CASUAL_CONVERSATION = "casual_conversation"
    HELP_REQUEST = "help_request"
    GENERAL_CONVERSATION = "general_conversation"


@dataclass(frozen=True)
class IntentRule:
    """One row of the classification table."""

    intent: ConversationIntent
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rule(intent: ConversationIntent, pattern: str) -> IntentRule:
    return IntentRule(intent, re.compile(pattern, re.IGNORECASE))


INTENT_RULES: tuple[IntentRule, ...] = (
    _rule(
        ConversationIntent.TASK_CREATION,
        r"(?:need to|have to|should|must|want to|plan to|remind me|don't forget)",
    ),
    _rule(
        ConversationIntent.TASK_QUERY,
        r"(?:what|show me|list|find|search|where|which)\s+(?:tasks|todo|work)",
    ),
    _rule(
        ConversationIntent.TASK_UPDATE,
        r"(?:mark|update|change|modify|edit|complete|done|finished)",
    ),
    _rule(
        ConversationIntent.PROJECT_DISCUSSION,
        r"(?:project|working on|focus on|switch to)",
    ),
    _rule(
        ConversationIntent.STATUS_CHECK,
        r"(?:how|what's|status|progress|update)",
    ),
    _rule(
        ConversationIntent.CASUAL_CONVERSATION,
        r"(?:hello|hi|how are you|thanks|thank you|goodbye|bye)",
    ),
    _rule(
        ConversationIntent.HELP_REQUEST,
        r"(?:help|how do|can you|what can)",
    ),
)


def classify_intent(
    text: str,
    rules: tuple[IntentRule, ...] = INTENT_RULES,
) -> ConversationIntent:
    """Return the first matching rule's intent, else general conversation."""
    for rule in rules:
        if rule.matches(text):
            return rule.intent
    return ConversationIntent.GENERAL_CONVERSATION
