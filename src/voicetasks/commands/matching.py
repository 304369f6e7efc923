"""
Fuzzy task resolution for command targets ("the report task").
"""

from __future__ import annotations

from typing import Sequence

from voicetasks.models import Task

MATCH_THRESHOLD = 0.3


def match_score(task: Task, identifier: str) -> float:
    """
    Score how well an identifier names a task, capped at 1.0.

    +1.0 identifier in title, up to +0.8 for the share of identifier words
    found in title words, +0.4 in description, +0.6 in project, up to +0.3
    for the share of tags overlapping the identifier.
    """
    identifier = identifier.lower().strip()
    if not identifier:
        return 0.0

    title = task.title.lower()
    description = (task.description or "").lower()
    project = (task.project or "").lower()

    score = 0.0
    if identifier in title:
        score += 1.0

    words = identifier.split()
    title_words = title.split()
    matching = [
        word for word in words
        if any(word in title_word or title_word in word for title_word in title_words)
    ]
    score += (len(matching) / len(words)) * 0.8

    if identifier in description:
        score += 0.4
    if project and identifier in project:
        score += 0.6

    tags = [tag.lower() for tag in task.tags]
    matching_tags = [tag for tag in tags if tag in identifier or identifier in tag]
    score += (len(matching_tags) / max(len(tags), 1)) * 0.3

    return min(score, 1.0)


def find_tasks_by_identifier(tasks: Sequence[Task], identifier: str) -> list[Task]:
    """Tasks scoring above the threshold, best match first."""
    scored = [(match_score(task, identifier), task) for task in tasks]
    scored = [(score, task) for score, task in scored if score > MATCH_THRESHOLD]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [task for _, task in scored]
