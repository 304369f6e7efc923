"""Quick voice commands: parsing, task resolution and execution."""

from voicetasks.commands.executor import CommandExecutor, CommandResult
from voicetasks.commands.matching import find_tasks_by_identifier, match_score
from voicetasks.commands.parser import (
    COMMAND_RULES,
    CommandRule,
    CommandType,
    VoiceCommand,
    VoiceCommandParser,
    command_suggestions,
)

__all__ = [
    "COMMAND_RULES",
    "CommandExecutor",
    "CommandResult",
    "CommandRule",
    "CommandType",
    "VoiceCommand",
    "VoiceCommandParser",
    "command_suggestions",
    "find_tasks_by_identifier",
    "match_score",
]
