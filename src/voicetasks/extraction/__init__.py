"""Intent classification and task extraction."""

from voicetasks.extraction.extractor import ExtractionResult, TaskExtractor
from voicetasks.extraction.intents import (
    INTENT_RULES,
    ConversationIntent,
    IntentRule,
    classify_intent,
)

__all__ = [
    "INTENT_RULES",
    "ConversationIntent",
    "ExtractionResult",
    "IntentRule",
    "TaskExtractor",
    "classify_intent",
]
