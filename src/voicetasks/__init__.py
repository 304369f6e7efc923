"""
voicetasks - conversational task manager.

Turns chat and short voice commands into tasks, tracks time spent on them
and learns when the user gets things done.
"""

__version__ = "0.1.0"
