"""
Response Generator

Canned, intent-keyed replies that pick up on what the recent conversation
has been about. Variant choice is random; pass a seeded random.Random for
reproducible wording.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from voicetasks.extraction.intents import ConversationIntent
from voicetasks.models import Message, TaskDraft, UserMemory


THEME_PATTERNS = {
    "project": re.compile(r"project|development|build|create|design"),
    "deadline": re.compile(r"deadline|due|urgent|asap|rush"),
    "meeting": re.compile(r"meeting|call|discuss|presentation|demo"),
    "planning": re.compile(r"plan|schedule|organize|strategy|roadmap"),
    "review": re.compile(r"review|feedback|check|evaluate|assess"),
}


def detect_themes(history: Sequence[Message], window: int = 6) -> list[str]:
    """Themes present in the last `window` messages, in table order."""
    if window <= 0:
        return []
    recent = history[-window:]
    content = " ".join(m.content.lower() for m in recent)
    return [theme for theme, pattern in THEME_PATTERNS.items() if pattern.search(content)]


@dataclass(frozen=True)
class ResponseVariant:
    """
    One reply option.

    `themed` is used instead of `plain` when the recent conversation shares
    `theme`. Variants without a theme always use `plain`.
    """

    plain: str
    themed: Optional[str] = None
    theme: Optional[str] = None

    def render(self, themes: Sequence[str]) -> str:
        if self.themed and self.theme and self.theme in themes:
            return self.themed.format(theme=self.theme)
        return self.plain


RESPONSE_POOLS: dict[ConversationIntent, list[ResponseVariant]] = {
    ConversationIntent.TASK_CREATION: [
        ResponseVariant(
            plain="Excellent! I've identified some actionable items from your message. Let me break down what I found.",
            themed="Perfect! I can see how these new tasks fit with what we've been discussing about your project.",
            theme="project",
        ),
        ResponseVariant(
            plain="I like how you're thinking through these action items! Let me help you organize them.",
            themed="Great timing! These tasks fit into the timeline we've been mapping out. I'll help you sequence them.",
            theme="deadline",
        ),
        ResponseVariant(
            plain="Got it! I've captured some clear action items from what you shared.",
            themed="Noted. With everything we've planned so far, these slot in nicely.",
            theme="planning",
        ),
    ],
    ConversationIntent.TASK_QUERY: [
        ResponseVariant(
            plain="I'll look over your current tasks and point out what deserves attention first.",
            themed="Let me pull together an update on the deadlines we've been tracking.",
            theme="deadline",
        ),
        ResponseVariant(
            plain="Great question! Let me go through your task list and highlight priorities.",
        ),
        ResponseVariant(
            plain="I'll examine your tasks from a few angles: status, priorities and patterns.",
            themed="I'll go through your tasks, starting with the ones connected to your project.",
            theme="project",
        ),
    ],
    ConversationIntent.PROJECT_DISCUSSION: [
        ResponseVariant(
            plain="This sounds like a substantial project! Let's break it down into manageable phases.",
            themed="Building on our project discussion, I'm starting to see the bigger picture of what you're trying to accomplish.",
            theme="project",
        ),
        ResponseVariant(
            plain="Project discussions are my favorite! I can help you think about timelines, dependencies and sequencing.",
            themed="Let's fold this into the plan we've been sketching and look for bottlenecks.",
            theme="planning",
        ),
        ResponseVariant(
            plain="This project has some interesting dimensions! Let's approach it systematically and find the critical path.",
        ),
    ],
    ConversationIntent.CASUAL_CONVERSATION: [
        ResponseVariant(
            plain="Hello! I'm here to help you tackle whatever's on your plate today.",
            themed="Good to continue our {theme} discussion! What else is on your mind?",
            theme="planning",
        ),
        ResponseVariant(
            plain="Hi there! Ready to dive into some productive planning?",
            themed="Good to continue our {theme} discussion! I'm keeping track of where we left off.",
            theme="project",
        ),
        ResponseVariant(
            plain="Hey! Whether it's organizing tasks or thinking through a project, I'm ready when you are.",
        ),
    ],
    ConversationIntent.HELP_REQUEST: [
        ResponseVariant(
            plain="I can capture tasks from natural conversation, track time spent on them, and suggest what to work on next based on your productivity patterns.",
        ),
        ResponseVariant(
            plain="Tell me what you need to do in your own words and I'll turn it into tasks. You can also use quick commands like 'mark complete: send the email'.",
            themed="Since we've been planning, try asking me to show your agenda or to order your tasks by priority.",
            theme="planning",
        ),
        ResponseVariant(
            plain="Think of me as a planning partner: I capture tasks, estimate how long they'll take and help you decide what comes first.",
        ),
    ],
}

SUGGESTIONS: dict[ConversationIntent, list[str]] = {
    ConversationIntent.TASK_CREATION: [
        "Let's explore the timeline and dependencies for these tasks",
        "Would you like help breaking any of these down into smaller steps?",
        "Should we discuss the priority and sequencing?",
        "What resources or support might you need for these tasks?",
    ],
    ConversationIntent.PROJECT_DISCUSSION: [
        "Tell me about the key milestones and success metrics",
        "What's the critical path and biggest risks?",
        "Who are the key stakeholders and what do they need?",
        "What would an ideal timeline look like?",
    ],
    ConversationIntent.TASK_QUERY: [
        "Let's look at your workload and find quick wins",
        "What patterns do you see in your current task mix?",
        "Are there any tasks that could be streamlined?",
    ],
    ConversationIntent.GENERAL_CONVERSATION: [
        "What's your biggest challenge right now?",
        "Tell me about a project that's going really well",
        "Are there any recurring tasks that eat up your time?",
    ],
}


class ResponseGenerator:
    """
    Generates conversational replies for the local assistant.

    Stateless across calls apart from the random source.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        user_memory: Optional[UserMemory] = None,
        theme_window: int = 6,
    ):
        self.rng = rng or random.Random()
        self.user_memory = user_memory or UserMemory()
        self.theme_window = theme_window

    def generate(
        self,
        utterance: str,
        intent: ConversationIntent,
        tasks: Sequence[TaskDraft],
        history: Sequence[Message] = (),
    ) -> str:
        """Compose a reply for one user turn."""
        themes = detect_themes(history, self.theme_window)
        pool = RESPONSE_POOLS.get(intent) or RESPONSE_POOLS[ConversationIntent.CASUAL_CONVERSATION]
        parts = [self.rng.choice(pool).render(themes)]

        if tasks:
            parts.append(self.task_clause(tasks))

        current = self.user_memory.contextual_info.current_projects
        if current and intent == ConversationIntent.PROJECT_DISCUSSION:
            parts.append(self.project_clause(current, tasks))

        return " ".join(parts)

    @staticmethod
    def task_clause(tasks: Sequence[TaskDraft]) -> str:
        count = len(tasks)
        noun = "task" if count == 1 else "tasks"
        clause = f"I found {count} {noun} that I can add to your list."
        if count == 1:
            clause += f' "{tasks[0].title}"'
            if tasks[0].priority.value != "medium":
                clause += f" is marked {tasks[0].priority.value} priority"
            clause += "."
        return clause

    @staticmethod
    def project_clause(current_projects: Sequence[str], tasks: Sequence[TaskDraft]) -> str:
        relevant = next(
            (
                project
                for project in current_projects
                if any(t.project and project.lower() in t.project.lower() for t in tasks)
            ),
            current_projects[0],
        )
        if any(t.project for t in tasks):
            return f"I can see this connects to your {relevant} project work."
        return f"This might relate to your ongoing {relevant} project."

    @staticmethod
    def suggestions(intent: ConversationIntent, limit: int = 3) -> list[str]:
        """Follow-up prompts for an intent."""
        return SUGGESTIONS.get(intent, [])[:limit]
