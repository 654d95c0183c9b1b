"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from choicecraft.controller import CharacterSeed
from choicecraft.minigames import MiniGameAction
from choicecraft.models import StatName
from choicecraft.proposals import MiniGameStart


class CreateStory(BaseModel):
    title: str
    plot: str = ""
    genre: str = "Fantasy"
    location_name: str = ""
    scenes: list[str] = Field(default_factory=list)
    characters: list[CharacterSeed]
    is_coop: bool = False


class UserBody(BaseModel):
    user_id: str


class ActionBody(BaseModel):
    user_id: str
    character_id: str
    text: str


class ActiveCharacterBody(BaseModel):
    character_id: str


class StatPointBody(BaseModel):
    user_id: str
    stat: StatName


class StartMiniGameBody(BaseModel):
    user_id: str
    character_id: str
    game: MiniGameStart


class MiniGameMoveBody(BaseModel):
    user_id: str
    character_id: str
    move: MiniGameAction


class ClaimBody(BaseModel):
    user_id: str
    character_id: str
    display_name: str = "New Player"


class JoinWithNewCharacterBody(BaseModel):
    user_id: str
    character: CharacterSeed
    display_name: str = "New Player"


class PurchaseBody(BaseModel):
    item_id: str
    story_id: str | None = None
    character_id: str | None = None
    name: str = ""
    description: str = ""


class CheckConnectionBody(BaseModel):
    provider_url: str
    api_key: str = ""
    provider_format: str = "koboldcpp"
