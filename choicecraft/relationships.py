"""Directed opinions between characters.

`character.relationships[other_id]` is how `character` feels about `other`,
in -100..100. The two directions are independent values, but a shared event
normally moves both, which is what adjust_pair() does.

These functions mutate the Story they are given; reconciliation always hands
them a working copy.
"""

from __future__ import annotations

import logging

from choicecraft.ledger import clamp
from choicecraft.models import Story, StoryHistoryEntry

logger = logging.getLogger(__name__)

RELATIONSHIP_RANGE = (-100, 100)

Pair = tuple[str, str]


def pair_key(a: str, b: str) -> Pair:
    """Unordered pair key."""
    return (a, b) if a <= b else (b, a)


def value(story: Story, from_id: str, to_id: str) -> int:
    char = story.character(from_id)
    if char is None:
        return 0
    return char.relationships.get(to_id, 0)


def adjust(story: Story, from_id: str, to_id: str, delta: int) -> int | None:
    """Move from_id's opinion of to_id by delta. Returns the new value, or
    None when either character is unknown."""
    source = story.character(from_id)
    if source is None or story.character(to_id) is None or from_id == to_id:
        logger.warning("Relationship change %s -> %s skipped: unknown character", from_id, to_id)
        return None
    new_value = clamp(source.relationships.get(to_id, 0) + delta, *RELATIONSHIP_RANGE)
    source.relationships[to_id] = new_value
    return new_value


def adjust_pair(story: Story, a: str, b: str, delta: int) -> bool:
    """Apply a shared event to both directions. Returns False if skipped."""
    if adjust(story, a, b, delta) is None:
        return False
    adjust(story, b, a, delta)
    return True


def link_new_character(story: Story, character_id: str) -> None:
    """Give a newly added character a neutral relationship with everyone."""
    newcomer = story.character(character_id)
    if newcomer is None:
        return
    for other in story.characters:
        if other.id == character_id:
            continue
        newcomer.relationships.setdefault(other.id, 0)
        other.relationships.setdefault(character_id, 0)


def history(story: Story, a: str, b: str) -> list[StoryHistoryEntry]:
    """Committed turns whose relationship changes involve the pair, newest first."""
    wanted = pair_key(a, b)
    matches = []
    for entry in reversed(story.story_history):
        for change in entry.relationship_changes:
            if pair_key(entry.character_id, change.character_id) == wanted:
                matches.append(entry)
                break
    return matches


def crossed_threshold(before: int, after: int, threshold: int) -> bool:
    return abs(after) >= threshold and abs(before) < threshold


def new_milestones(before: Story, after: Story, threshold: int) -> list[Pair]:
    """Pairs whose opinion reached |value| >= threshold for the first time."""
    fired = {tuple(p) for p in after.relationship_milestones}
    found: list[Pair] = []
    for char in after.characters:
        for other_id, current in char.relationships.items():
            key = pair_key(char.id, other_id)
            if key in fired or key in found:
                continue
            if crossed_threshold(value(before, char.id, other_id), current, threshold):
                found.append(key)
    return found
