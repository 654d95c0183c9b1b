"""Bounded numeric character state, inventory, skills and levelling.

Bounds (enforced after every delta, by clamping, never by raising):
  health     0..100
  happiness  0..100
  money      >= 0
  stats      >= 0
  xp         only grows; negative gains are ignored

Levelling is a fixed table: reaching `level * 100` total XP advances one
level and grants one unspent stat point. A single large gain can cross
several thresholds.

Item removal is by name (case-insensitive) and silently skips items the
character does not hold, since the narration service routinely "removes"
things it invented a turn earlier.
"""

from __future__ import annotations

import logging
import uuid

from pydantic import BaseModel, Field

from choicecraft.errors import ValidationError
from choicecraft.models import Character, CharacterStats, Item, StatName

logger = logging.getLogger(__name__)

HEALTH_RANGE = (0, 100)
HAPPINESS_RANGE = (0, 100)


class CharacterDelta(BaseModel):
    """A proposed change to one character. Every field is optional."""

    health: int = 0
    money: int = 0
    happiness: int = 0
    xp: int = 0
    items_gained: list[Item] = Field(default_factory=list)
    items_lost: list[str] = Field(default_factory=list)
    skill_gained: str | None = None


def clamp(value: int, low: int, high: int | None = None) -> int:
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def xp_for_next_level(level: int) -> int:
    return level * 100


def _level_up(level: int, xp: int) -> tuple[int, int]:
    """Return (new_level, levels_gained) for a total XP value."""
    gained = 0
    while xp >= xp_for_next_level(level):
        level += 1
        gained += 1
    return level, gained


def apply_delta(character: Character, delta: CharacterDelta) -> Character:
    """Return a copy of `character` with `delta` applied and every bound enforced."""
    updated = character.model_copy(deep=True)

    updated.health = clamp(character.health + delta.health, *HEALTH_RANGE)
    updated.happiness = clamp(character.happiness + delta.happiness, *HAPPINESS_RANGE)
    updated.money = clamp(character.money + delta.money, 0)

    if delta.xp > 0:
        updated.xp = character.xp + delta.xp
        updated.level, gained = _level_up(character.level, updated.xp)
        if gained:
            updated.unspent_stat_points += gained
            logger.info("%s reached level %d (+%d stat points)", character.name, updated.level, gained)
    elif delta.xp < 0:
        logger.debug("Ignoring negative xp delta %d for %s", delta.xp, character.name)

    for lost in delta.items_lost:
        idx = _find_item(updated.items, lost)
        if idx is None:
            logger.debug("Item %r not held by %s, removal skipped", lost, character.name)
            continue
        updated.items.pop(idx)

    for item in delta.items_gained:
        if item.name.strip():
            updated.items.append(item)

    skill = (delta.skill_gained or "").strip()
    if skill and skill.lower() not in (s.lower() for s in updated.skills):
        updated.skills.append(skill)

    return updated


def _find_item(items: list[Item], name: str) -> int | None:
    wanted = name.strip().lower()
    for i, item in enumerate(items):
        if item.name.lower() == wanted:
            return i
    return None


def allocate_stat_point(character: Character, stat: StatName) -> Character:
    """Spend one unspent stat point on `stat`."""
    if character.unspent_stat_points < 1:
        raise ValidationError("No unspent stat points", {"character_id": character.id})
    updated = character.model_copy(deep=True)
    setattr(updated.stats, stat, clamp(getattr(character.stats, stat) + 1, 0))
    updated.unspent_stat_points -= 1
    return updated


def new_character(
    name: str,
    *,
    is_playable: bool = False,
    backstory: str = "",
    traits: str = "",
    stats: CharacterStats | None = None,
    character_id: str | None = None,
) -> Character:
    """Create a character with the starting values every new character gets."""
    return Character(
        id=character_id or str(uuid.uuid4()),
        name=name,
        backstory=backstory,
        traits=traits,
        is_playable=is_playable,
        stats=stats or CharacterStats(),
    )
