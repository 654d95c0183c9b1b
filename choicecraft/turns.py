"""Turn arbitration — whose action is acceptable right now, and co-op claims.

Turn ownership is data on the story:

  single-player  active_character_id is the actor; the player may switch it
  co-op          turn_character_id is the only character whose action is
                 accepted; players claim one playable character each

A character has at most one claimant and a user holds at most one claim per
story. These functions mutate the story they are given; the controller passes
a working copy and commits it only when the whole operation succeeds.
"""

from __future__ import annotations

import logging
import random
import string

from choicecraft import relationships
from choicecraft.errors import NotYourTurn, ValidationError
from choicecraft.ledger import new_character
from choicecraft.models import Character, CharacterStats, Player, Story

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_LENGTH = 6


def acting_character_id(story: Story) -> str | None:
    if story.is_coop:
        return story.turn_character_id
    return story.active_character_id


def check_turn(story: Story, character_id: str) -> None:
    """Raise NotYourTurn unless `character_id` may act now. Never mutates."""
    acting = acting_character_id(story)
    if acting is None or character_id != acting:
        raise NotYourTurn(character_id, acting)


def player_for_user(story: Story, user_id: str) -> Player | None:
    return next((p for p in story.players if p.user_id == user_id), None)


def claimant(story: Story, character_id: str) -> Player | None:
    return next((p for p in story.players if p.character_id == character_id), None)


def claimed_character_ids(story: Story) -> list[str]:
    """Claimed, playable, active characters in claim order."""
    ids = []
    for player in story.players:
        char = story.character(player.character_id)
        if char is not None and char.is_playable and char.active:
            ids.append(char.id)
    return ids


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------

def claim(story: Story, user_id: str, character_id: str, display_name: str = "New Player") -> Player:
    char = story.character(character_id)
    if char is None:
        raise ValidationError("Character not found", {"character_id": character_id})
    if not char.is_playable or not char.active:
        raise ValidationError("Character cannot be claimed", {"character_id": character_id})

    existing = player_for_user(story, user_id)
    if existing is not None:
        if existing.character_id == character_id:
            return existing
        raise ValidationError("User already plays a character in this story", {"user_id": user_id})
    if claimant(story, character_id) is not None:
        raise ValidationError("Character is already claimed", {"character_id": character_id})

    player = Player(user_id=user_id, character_id=character_id, display_name=display_name or "New Player")
    story.players.append(player)
    if story.turn_character_id is None:
        story.turn_character_id = character_id
    logger.info("User %s claimed %s in story %s", user_id, char.name, story.id)
    return player


def create_and_claim(
    story: Story,
    user_id: str,
    name: str,
    *,
    backstory: str = "",
    traits: str = "",
    stats: CharacterStats | None = None,
    display_name: str = "New Player",
) -> Character:
    """Add a brand-new playable character for a joining user and claim it."""
    if player_for_user(story, user_id) is not None:
        raise ValidationError("User already plays a character in this story", {"user_id": user_id})
    name = name.strip()
    if not name:
        raise ValidationError("Character name is required")
    if story.character_by_name(name) is not None:
        raise ValidationError("A character with that name already exists", {"name": name})

    char = new_character(name, is_playable=True, backstory=backstory, traits=traits, stats=stats)
    story.characters.append(char)
    relationships.link_new_character(story, char.id)
    claim(story, user_id, char.id, display_name)
    return story.character(char.id) or char


def leave(story: Story, user_id: str) -> Player:
    """Free the user's character. Hands the turn on if it held it."""
    index = next((i for i, p in enumerate(story.players) if p.user_id == user_id), None)
    if index is None:
        raise ValidationError("User is not part of this story", {"user_id": user_id})
    player = story.players.pop(index)

    if story.turn_character_id == player.character_id:
        remaining = claimed_character_ids(story)
        if not remaining:
            story.turn_character_id = None
        else:
            # The player who followed the leaver in claim order is next.
            story.turn_character_id = remaining[index % len(remaining)]
    logger.info("User %s left story %s", user_id, story.id)
    return player


# ---------------------------------------------------------------------------
# Next actor
# ---------------------------------------------------------------------------

def _resolve(story: Story, reference: str | None) -> Character | None:
    if not reference:
        return None
    return story.character(reference) or story.character_by_name(reference)


def select_next(story: Story, suggested: str | None = None) -> str | None:
    """Pick the next turn holder.

    In co-op the narration service's suggestion wins when it names a claimed,
    playable character; otherwise the turn moves round-robin in claim order.
    Single-player stories keep their active character.
    """
    if not story.is_coop:
        return story.active_character_id

    candidates = claimed_character_ids(story)
    if not candidates:
        return None

    char = _resolve(story, suggested)
    if char is not None and char.id in candidates:
        return char.id
    if suggested:
        logger.warning("Suggested next actor %r is not a claimed character; using round-robin", suggested)

    current = story.turn_character_id
    if current in candidates:
        return candidates[(candidates.index(current) + 1) % len(candidates)]
    return candidates[0]


def set_active_character(story: Story, character_id: str) -> None:
    if story.is_coop:
        raise ValidationError("Co-op stories follow the turn order")
    char = story.character(character_id)
    if char is None or not char.is_playable or not char.active:
        raise ValidationError("Character is not playable", {"character_id": character_id})
    story.active_character_id = character_id


def generate_invite_code(rng: random.Random) -> str:
    return "".join(rng.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))
