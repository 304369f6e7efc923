"""Conversation handling: response generation, assistants and chat sessions."""

from voicetasks.conversation.assistant import LocalAssistant, TaskAssistant
from voicetasks.conversation.responses import ResponseGenerator, detect_themes
from voicetasks.conversation.session import ChatSession, Reply

__all__ = [
    "ChatSession",
    "LocalAssistant",
    "Reply",
    "ResponseGenerator",
    "TaskAssistant",
    "detect_themes",
]
