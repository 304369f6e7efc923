"""Task storage and time tracking."""

from voicetasks.tasks.store import TaskStore

__all__ = ["TaskStore"]
