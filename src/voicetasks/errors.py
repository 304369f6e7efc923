"""
Error taxonomy.

Only validation failures reach callers as exceptions. NotFoundError is
raised by task lookups and turned into a logged no-op at the store
boundary. Remote model failures become degraded responses, and storage
failures become False/empty results.
"""

from __future__ import annotations


class VoiceTasksError(Exception):
    """Base class for all voicetasks errors."""


class ValidationError(VoiceTasksError):
    """A value was rejected before any mutation happened."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class NotFoundError(VoiceTasksError):
    """An entity id did not resolve."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class ExternalServiceError(VoiceTasksError):
    """The remote chat-completion service failed (transport, timeout or HTTP status)."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class StorageError(VoiceTasksError):
    """A persistence adapter could not read or write a collection."""
