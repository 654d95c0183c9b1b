"""Turn an untrusted proposal into the next story state.

apply_turn() is a pure reducer: (story, action, proposal) -> new story. It
works on a deep copy and never touches the story it was given, so a caller
that drops the outcome (a cancelled turn, a failed summary request) has
changed nothing.

Order of application for one turn:
  1. character ledger delta for the acting character
  2. relationship deltas, both directions
  3. location, time of day, story progression, new scene
  4. objective completion, then the interaction counter and any new objective
  5. current scenario and a proposed mini-game
  6. the history entry
  7. the next turn holder
  8. status

Status precedence after a turn:
  ended > relationship-event > chapter-end > playing

A relationship event that lands on a chapter boundary leaves
chapter_end_pending set, so acknowledging the event opens the chapter end.
"""

from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from choicecraft import minigames, objectives, relationships, turns
from choicecraft.errors import InvariantViolation, ValidationError
from choicecraft.ledger import HAPPINESS_RANGE, HEALTH_RANGE, apply_delta, clamp
from choicecraft.minigames import MiniGameResult
from choicecraft.models import (
    RelationshipChange,
    RelationshipEvent,
    Scenario,
    Scene,
    Story,
    StoryHistoryEntry,
)
from choicecraft.proposals import TurnProposal
from choicecraft.settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


class TurnOutcome(BaseModel):
    story: Story
    token_reward: int = 0
    events: list[str] = Field(default_factory=list)
    new_scene_id: str | None = None


def apply_turn(
    story: Story,
    actor_id: str,
    choice: str,
    proposal: TurnProposal,
    *,
    now: datetime,
    rng: random.Random,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> TurnOutcome:
    working = story.model_copy(deep=True)
    actor = working.character(actor_id)
    if actor is None:
        raise ValidationError("Acting character not found", {"character_id": actor_id})
    events: list[str] = []

    # 1. Ledger
    working.replace_character(apply_delta(actor, proposal.stat_deltas))

    # 2. Relationships
    applied: list[RelationshipChange] = []
    for change in proposal.relationship_deltas:
        target = working.character(change.character_id) or working.character_by_name(change.character_id)
        if target is None or target.id == actor_id:
            logger.warning("Relationship change for %r discarded", change.character_id)
            continue
        if change.change and relationships.adjust_pair(working, actor_id, target.id, change.change):
            applied.append(RelationshipChange(character_id=target.id, change=change.change))

    # 3. World
    from_location = working.location_name
    if proposal.location_name and proposal.location_name.strip():
        working.location_name = proposal.location_name.strip()
    if proposal.time_of_day:
        working.time_of_day = proposal.time_of_day
    if proposal.story_progression and proposal.story_progression.strip():
        working.story_progression = proposal.story_progression.strip()

    new_scene_id = None
    if proposal.new_scene and proposal.new_scene.name.strip():
        name = proposal.new_scene.name.strip()
        if any(s.name.lower() == name.lower() for s in working.scenes):
            logger.debug("Scene %r already known", name)
        else:
            scene = Scene(id=str(uuid.uuid4()), name=name, prompt=proposal.new_scene.prompt)
            working.scenes.append(scene)
            new_scene_id = scene.id
            events.append("scene_discovered")

    # 4. Objectives
    token_reward = 0
    if proposal.completed_objective_id:
        token_reward = objectives.complete(working, proposal.completed_objective_id)
        if token_reward:
            events.append("objective_completed")
    due = objectives.tick(working)
    if proposal.new_objective:
        if due and objectives.add(
            working, proposal.new_objective.description, proposal.new_objective.token_reward, rng, settings
        ):
            events.append("objective_added")
        elif not due:
            logger.warning("Unrequested objective %r discarded", proposal.new_objective.description)

    # 5. Scenario and mini-game
    acting = working.character(actor_id)
    acting.current_scenario = Scenario(
        description=proposal.narrative_text,
        interacting_npc_name=proposal.interacting_npc_name,
        required_next_character_name=proposal.next_actor,
    )
    if proposal.mini_game is not None:
        if working.active_mini_game is None:
            working.active_mini_game = minigames.create(proposal.mini_game, rng)
            events.append("mini_game_started")
        else:
            logger.warning("Mini-game proposal ignored: one is already active")

    # 6. History
    working.story_history.append(StoryHistoryEntry(
        character_id=actor_id,
        character_name=acting.name,
        choice=choice,
        outcome=proposal.narrative_text,
        outcome_npc_name=proposal.interacting_npc_name,
        from_location=from_location,
        to_location=working.location_name,
        relationship_changes=applied,
        timestamp=now,
    ))
    working.last_played_at = now

    # 7. Next actor
    if working.is_coop:
        working.turn_character_id = turns.select_next(working, proposal.next_actor)

    # 8. Status
    _settle_status(story, working, proposal, settings, events)

    repair_invariants(working)
    logger.info(
        "Turn %d reconciled for story %s: status=%s events=%s",
        len(working.story_history), working.id, working.status, events,
    )
    return TurnOutcome(story=working, token_reward=token_reward, events=events, new_scene_id=new_scene_id)


def _settle_status(
    before: Story, working: Story, proposal: TurnProposal, settings: EngineSettings, events: list[str]
) -> None:
    turns_played = len(working.story_history)
    chapter_boundary = turns_played % settings.chapter_length == 0

    if proposal.story_ended:
        working.status = "ended"
        events.append("story_ended")
        return

    milestones = relationships.new_milestones(before, working, settings.relationship_event_threshold)
    if milestones:
        working.relationship_milestones.extend(milestones)
        a, b = milestones[0]
        description = ""
        if proposal.relationship_event is not None:
            description = proposal.relationship_event.description.strip()
        working.last_relationship_event = RelationshipEvent(
            character_ids=(a, b),
            description=description or _default_event_text(working, a, b),
        )
        working.status = "relationship-event"
        working.chapter_end_pending = chapter_boundary
        events.append("relationship_event")
        return

    if chapter_boundary:
        working.status = "chapter-end"
        events.append("chapter_end")
        return

    working.status = "playing"


def _default_event_text(story: Story, a: str, b: str) -> str:
    first, second = story.character(a), story.character(b)
    names = f"{first.name if first else a} and {second.name if second else b}"
    if relationships.value(story, a, b) + relationships.value(story, b, a) >= 0:
        return f"A bond forms between {names}."
    return f"A rift opens between {names}."


def apply_mini_game_result(story: Story, character_id: str, result: MiniGameResult) -> Story:
    """Store a mini-game move. A finished game pays out and is retired."""
    working = story.model_copy(deep=True)
    if result.outcome == "active":
        working.active_mini_game = result.game
        return working

    char = working.character(character_id)
    if char is None:
        raise ValidationError("Acting character not found", {"character_id": character_id})
    working.replace_character(apply_delta(char, minigames.reward(result.game)))
    working.active_mini_game = None
    working.last_mini_game = result.game
    logger.info("Mini-game %s finished in story %s: %s", result.game.type, story.id, result.outcome)
    repair_invariants(working)
    return working


# ---------------------------------------------------------------------------
# Invariant repair
# ---------------------------------------------------------------------------

def repair_invariants(story: Story) -> list[InvariantViolation]:
    """Clamp anything out of bounds in place. Returns what was fixed."""
    found: list[InvariantViolation] = []

    def note(message: str, **details) -> None:
        violation = InvariantViolation(message, details)
        logger.error("Invariant repaired: %s", violation)
        found.append(violation)

    for char in story.characters:
        for attr, (low, high) in (("health", HEALTH_RANGE), ("happiness", HAPPINESS_RANGE)):
            current = getattr(char, attr)
            if not low <= current <= high:
                note(f"{attr} out of range", character_id=char.id, value=current)
                setattr(char, attr, clamp(current, low, high))
        if char.money < 0:
            note("money below zero", character_id=char.id, value=char.money)
            char.money = 0
        for stat in ("intellect", "charisma", "wits", "willpower"):
            if getattr(char.stats, stat) < 0:
                note("stat below zero", character_id=char.id, stat=stat)
                setattr(char.stats, stat, 0)
        low, high = relationships.RELATIONSHIP_RANGE
        for other_id, current in list(char.relationships.items()):
            if other_id == char.id:
                note("self relationship", character_id=char.id)
                del char.relationships[other_id]
            elif not low <= current <= high:
                note("relationship out of range", character_id=char.id, other_id=other_id, value=current)
                char.relationships[other_id] = clamp(current, low, high)

    if story.active_mini_game is not None and story.active_mini_game.status != "active":
        note("finished mini-game left active", type=story.active_mini_game.type)
        story.last_mini_game = story.active_mini_game
        story.active_mini_game = None

    if story.is_coop and story.turn_character_id is not None:
        if story.turn_character_id not in turns.claimed_character_ids(story):
            note("turn held by an unclaimed character", character_id=story.turn_character_id)
            story.turn_character_id = turns.select_next(story)

    return found
