"""Shared result type for the mini-game engines."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from choicecraft.errors import ValidationError
from choicecraft.models import GameStatus, MiniGame

PositionFeedback = Literal["correct", "incorrect"]


class MiniGameResult(BaseModel):
    """The game after one move, plus what the presentation layer shows."""

    game: MiniGame
    outcome: GameStatus
    feedback: list[PositionFeedback] = Field(default_factory=list)
    message: str = ""


def require_active(game: MiniGame) -> None:
    if game.status != "active":
        raise ValidationError("This mini-game is already over", {"type": game.type, "status": game.status})
