"""What the narration service is allowed to suggest.

Everything here is untrusted. The narrator parses service output into these
models (rejecting anything that does not validate) and the reconciler or a
mini-game engine clamps the numbers before any of it becomes story state.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from choicecraft.ledger import CharacterDelta
from choicecraft.models import Bid, Difficulty, Item, PersuasionStage, RelationshipChange, TimeOfDay

# ---------------------------------------------------------------------------
# Mini-game start proposals
# ---------------------------------------------------------------------------


class NegotiationStart(BaseModel):
    type: Literal["negotiation"] = "negotiation"
    npc_name: str
    item: Item
    target_price: int = Field(ge=0)


class DiceBluffStart(BaseModel):
    type: Literal["dice_bluff"] = "dice_bluff"
    npc_name: str
    pot: int = Field(10, ge=0)


class PersuasionStart(BaseModel):
    type: Literal["persuasion"] = "persuasion"
    npc_name: str
    goal: str = ""
    stages: list[PersuasionStage] = Field(min_length=1)


class SequencePuzzleStart(BaseModel):
    type: Literal["sequence_puzzle"] = "sequence_puzzle"
    difficulty: Difficulty = "medium"
    max_attempts: int | None = Field(None, ge=1)


class RiddleStart(BaseModel):
    type: Literal["riddle"] = "riddle"
    npc_name: str | None = None
    question: str
    acceptable_answers: list[str] = Field(min_length=1)
    max_attempts: int | None = Field(None, ge=1)


MiniGameStart = Annotated[
    Union[NegotiationStart, DiceBluffStart, PersuasionStart, SequencePuzzleStart, RiddleStart],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Turn proposal
# ---------------------------------------------------------------------------


class NewObjective(BaseModel):
    description: str
    token_reward: int = 1


class NewScene(BaseModel):
    name: str
    prompt: str = ""


class RelationshipEventProposal(BaseModel):
    description: str
    image_prompt: str = ""


class TurnProposal(BaseModel):
    """The narration service's suggestion for one player action."""

    narrative_text: str = Field(min_length=1)
    story_progression: str | None = None
    location_name: str | None = None
    time_of_day: TimeOfDay | None = None
    interacting_npc_name: str | None = None
    next_actor: str | None = None
    stat_deltas: CharacterDelta = Field(default_factory=CharacterDelta)
    relationship_deltas: list[RelationshipChange] = Field(default_factory=list)
    completed_objective_id: str | None = None
    new_objective: NewObjective | None = None
    new_scene: NewScene | None = None
    relationship_event: RelationshipEventProposal | None = None
    mini_game: MiniGameStart | None = None
    story_ended: bool = False


class ChapterSummary(BaseModel):
    summary: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Mini-game hints
# ---------------------------------------------------------------------------


class NegotiationReply(BaseModel):
    dialogue: str
    patience_damage: int = 0
    counter_offer: int | None = None


class DiceBluffMove(BaseModel):
    action: Literal["bid", "challenge"]
    bid: Bid | None = None
    dialogue: str = ""
