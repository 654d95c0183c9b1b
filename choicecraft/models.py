"""Core domain models.

Every engine module and the storage layer operate on these types.
Pydantic is used for validation and serialisation at every data boundary;
engine functions never mutate a model they were handed, they return updated
copies.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

StoryStatus = Literal["idle", "playing", "chapter-end", "relationship-event", "ended"]
TimeOfDay = Literal["Morning", "Afternoon", "Evening", "Night"]
GameStatus = Literal["active", "won", "lost"]
StatName = Literal["intellect", "charisma", "wits", "willpower"]
Attitude = Literal["Hostile", "Annoyed", "Neutral", "Amused", "Friendly"]
Difficulty = Literal["easy", "medium", "hard"]

ATTITUDES: tuple[Attitude, ...] = ("Hostile", "Annoyed", "Neutral", "Amused", "Friendly")

DieFace = Annotated[int, Field(ge=1, le=6)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Characters
# ---------------------------------------------------------------------------

class Item(BaseModel):
    name: str
    description: str = ""


class CharacterStats(BaseModel):
    intellect: int = Field(5, ge=0)
    charisma: int = Field(5, ge=0)
    wits: int = Field(5, ge=0)
    willpower: int = Field(5, ge=0)


class Scenario(BaseModel):
    description: str
    interacting_npc_name: str | None = None
    required_next_character_name: str | None = None


class Character(BaseModel):
    """A story character, playable or AI-controlled.

    `relationships` maps another character's id to this character's opinion
    of them (-100..100). Characters are never deleted, only deactivated.
    """

    id: str
    name: str
    backstory: str = ""
    traits: str = ""
    is_playable: bool = False
    active: bool = True
    profile_image_url: str = ""

    health: int = Field(100, ge=0, le=100)
    money: int = Field(10, ge=0)
    happiness: int = Field(75, ge=0, le=100)
    stats: CharacterStats = Field(default_factory=CharacterStats)
    level: int = Field(1, ge=1)
    xp: int = Field(0, ge=0)
    unspent_stat_points: int = Field(0, ge=0)

    items: list[Item] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    relationships: dict[str, int] = Field(default_factory=dict)
    current_scenario: Scenario | None = None


class Player(BaseModel):
    """A co-op participant bound to one character."""

    user_id: str
    character_id: str
    display_name: str = "New Player"


# ---------------------------------------------------------------------------
# World
# ---------------------------------------------------------------------------

class Scene(BaseModel):
    id: str
    name: str
    url: str = ""
    prompt: str = ""


class Objective(BaseModel):
    id: str
    description: str
    status: Literal["active", "completed"] = "active"
    token_reward: int = Field(1, ge=0)


class RelationshipChange(BaseModel):
    character_id: str
    change: int


class StoryHistoryEntry(BaseModel):
    """One committed turn. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    character_id: str
    character_name: str
    choice: str
    outcome: str
    outcome_npc_name: str | None = None
    from_location: str | None = None
    to_location: str | None = None
    relationship_changes: list[RelationshipChange] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class RelationshipEvent(BaseModel):
    character_ids: tuple[str, str]
    description: str
    image_url: str = ""


# ---------------------------------------------------------------------------
# Mini-games: a closed tagged union on `type`
# ---------------------------------------------------------------------------

class Bid(BaseModel):
    quantity: int = Field(ge=1)
    value: DieFace


class PersuasionOption(BaseModel):
    text: str
    stat: StatName
    difficulty: int = Field(ge=0)


class PersuasionStage(BaseModel):
    dialogue: str
    options: list[PersuasionOption] = Field(min_length=1)


class NegotiationGame(BaseModel):
    type: Literal["negotiation"] = "negotiation"
    status: GameStatus = "active"
    npc_name: str
    item: Item
    target_price: int = Field(ge=0)
    patience: int = Field(100, ge=0, le=100)
    last_offer: int | None = None
    last_counter_offer: int | None = None
    npc_dialogue: str = ""


class DiceBluffGame(BaseModel):
    type: Literal["dice_bluff"] = "dice_bluff"
    status: GameStatus = "active"
    npc_name: str
    player_dice: list[DieFace] = Field(min_length=1)
    npc_dice: list[DieFace] = Field(min_length=1)  # hidden from presentation
    current_bid: Bid | None = None
    last_bidder: Literal["player", "npc"] | None = None
    turn: Literal["player", "npc"] = "player"
    pot: int = Field(10, ge=0)
    last_action_message: str = ""


class PersuasionGame(BaseModel):
    type: Literal["persuasion"] = "persuasion"
    status: GameStatus = "active"
    npc_name: str
    npc_attitude: Attitude = "Neutral"
    goal: str = ""
    stage_index: int = Field(0, ge=0)
    stages: list[PersuasionStage] = Field(min_length=1)


class SequencePuzzleGame(BaseModel):
    type: Literal["sequence_puzzle"] = "sequence_puzzle"
    status: GameStatus = "active"
    target_sequence: list[str] = Field(min_length=1)
    difficulty: Difficulty = "medium"
    attempts: int = Field(0, ge=0)
    max_attempts: int | None = Field(None, ge=1)


class RiddleGame(BaseModel):
    type: Literal["riddle"] = "riddle"
    status: GameStatus = "active"
    npc_name: str | None = None
    question: str
    acceptable_answers: list[str] = Field(min_length=1)
    attempts: int = Field(0, ge=0)
    max_attempts: int | None = Field(None, ge=1)


MiniGame = Annotated[
    Union[NegotiationGame, DiceBluffGame, PersuasionGame, SequencePuzzleGame, RiddleGame],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Story
# ---------------------------------------------------------------------------

class Story(BaseModel):
    """A running story and everything it owns."""

    id: str
    title: str
    plot: str = ""
    genre: str = "Fantasy"
    status: StoryStatus = "idle"

    characters: list[Character] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    objectives: list[Objective] = Field(default_factory=list)
    active_character_id: str | None = None

    # Co-op
    is_coop: bool = False
    invite_code: str | None = None
    players: list[Player] = Field(default_factory=list)
    turn_character_id: str | None = None

    story_history: list[StoryHistoryEntry] = Field(default_factory=list)
    time_of_day: TimeOfDay = "Morning"
    location_name: str = "Unknown Location"
    story_progression: str = "The story has just begun."
    chapter: int = Field(1, ge=1)
    interactions_until_next_objective: int = 7
    last_chapter_summary: str | None = None
    chapter_end_pending: bool = False
    last_relationship_event: RelationshipEvent | None = None
    relationship_milestones: list[tuple[str, str]] = Field(default_factory=list)

    active_mini_game: MiniGame | None = None
    last_mini_game: MiniGame | None = None

    created_at: datetime = Field(default_factory=utcnow)
    last_played_at: datetime | None = None

    def character(self, character_id: str | None) -> Character | None:
        for char in self.characters:
            if char.id == character_id:
                return char
        return None

    def character_by_name(self, name: str) -> Character | None:
        wanted = name.strip().lower()
        for char in self.characters:
            if char.name.lower() == wanted:
                return char
        return None

    def replace_character(self, updated: Character) -> None:
        for i, char in enumerate(self.characters):
            if char.id == updated.id:
                self.characters[i] = updated
                return
        self.characters.append(updated)


def public_dump(story: Story) -> dict[str, Any]:
    """Serialise a story for the presentation layer (NPC dice hidden)."""
    data = story.model_dump(mode="json")
    game = data.get("active_mini_game")
    if game and game["type"] == "dice_bluff":
        game["npc_dice"] = [None] * len(game["npc_dice"])
    return data


# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------

class Wallet(BaseModel):
    """Per-user regenerating resources."""

    user_id: str
    tokens: int = Field(10, ge=0)
    last_token_regen: datetime = Field(default_factory=utcnow)
    bookmarks: int = Field(3, ge=0)
    last_bookmark_regen: datetime = Field(default_factory=utcnow)
    last_daily_reward_claimed: datetime | None = None
    chapters_read: int = Field(0, ge=0)
