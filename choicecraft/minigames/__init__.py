"""Mini-game engines.

Five independent, deterministic challenges that can interrupt the story:

  negotiation      haggle an NPC down to (or past) their target price
  dice_bluff       Liar's Dice, ones wild
  persuasion       staged stat checks against an NPC's attitude
  sequence_puzzle  pick a lock by guessing a symbol sequence
  riddle           answer a riddle

Each engine is a set of pure functions returning a MiniGameResult. The only
async piece is play(), which fetches the narration service's hint when a kind
needs one (the negotiating NPC's reply, the dice opponent's move) and hands
it to the engine. The win/lose decision is always made by the engine.

Every dispatch matches exhaustively on the game union; a new kind that is
not handled fails type checking at the assert_never() calls.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Annotated, Literal, TypeVar, Union, assert_never

from pydantic import BaseModel, Field

from choicecraft.errors import ValidationError
from choicecraft.ledger import CharacterDelta
from choicecraft.models import (
    Bid,
    Character,
    DiceBluffGame,
    MiniGame,
    NegotiationGame,
    PersuasionGame,
    RiddleGame,
    SequencePuzzleGame,
)
from choicecraft.proposals import (
    DiceBluffStart,
    MiniGameStart,
    NegotiationStart,
    PersuasionStart,
    RiddleStart,
    SequencePuzzleStart,
)
from choicecraft.settings import DEFAULT_SETTINGS, EngineSettings

from . import dice_bluff, negotiation, persuasion, riddle, sequence_puzzle
from .base import MiniGameResult, require_active

if TYPE_CHECKING:
    from choicecraft.narration import Narrator

# XP for winning a challenge that has no money at stake.
CHALLENGE_XP = 25


# ---------------------------------------------------------------------------
# Player moves: one per kind, tagged like the games themselves
# ---------------------------------------------------------------------------

class NegotiationAction(BaseModel):
    type: Literal["negotiation"] = "negotiation"
    offer: int


class DiceBluffAction(BaseModel):
    type: Literal["dice_bluff"] = "dice_bluff"
    action: Literal["bid", "challenge"]
    bid: Bid | None = None


class PersuasionAction(BaseModel):
    type: Literal["persuasion"] = "persuasion"
    option_index: int


class SequencePuzzleAction(BaseModel):
    type: Literal["sequence_puzzle"] = "sequence_puzzle"
    attempt: list[str]


class RiddleAction(BaseModel):
    type: Literal["riddle"] = "riddle"
    answer: str


MiniGameAction = Annotated[
    Union[NegotiationAction, DiceBluffAction, PersuasionAction, SequencePuzzleAction, RiddleAction],
    Field(discriminator="type"),
]

_A = TypeVar("_A", bound=BaseModel)


def _expect(game: MiniGame, action: BaseModel, kind: type[_A]) -> _A:
    if not isinstance(action, kind):
        raise ValidationError(
            "Move does not fit the active mini-game",
            {"game": game.type, "move": getattr(action, "type", "?")},
        )
    return action


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def create(start: MiniGameStart, rng: random.Random) -> MiniGame:
    """Build a fresh game from a start proposal."""
    match start:
        case NegotiationStart():
            return NegotiationGame(
                npc_name=start.npc_name,
                item=start.item,
                target_price=start.target_price,
                npc_dialogue=f"{start.npc_name} names no price. Make an offer.",
            )
        case DiceBluffStart():
            return dice_bluff.new_game(start.npc_name, rng, pot=start.pot)
        case PersuasionStart():
            return PersuasionGame(npc_name=start.npc_name, goal=start.goal, stages=start.stages)
        case SequencePuzzleStart():
            return sequence_puzzle.new_puzzle(start.difficulty, rng, start.max_attempts)
        case RiddleStart():
            return riddle.new_riddle(
                start.question, start.acceptable_answers, start.npc_name, start.max_attempts
            )
        case _:
            assert_never(start)


async def play(
    game: MiniGame,
    action: MiniGameAction,
    character: Character,
    narrator: Narrator,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> MiniGameResult:
    """Resolve one player move. Raises before calling the narrator when the
    move is invalid."""
    require_active(game)
    match game:
        case NegotiationGame():
            move = _expect(game, action, NegotiationAction)
            negotiation.check_offer(game, move.offer, character.money)
            reply = None
            if negotiation.needs_reply(game, move.offer):
                reply = await narrator.negotiation_reply(game, move.offer, character)
            return negotiation.resolve(game, move.offer, reply, settings)
        case DiceBluffGame():
            move = _expect(game, action, DiceBluffAction)
            if move.action == "challenge":
                return dice_bluff.player_challenge(game)
            if move.bid is None:
                raise ValidationError("A bid needs a quantity and a value")
            result = dice_bluff.player_bid(game, move.bid)
            npc = await narrator.dice_move(result.game)
            return dice_bluff.npc_move(result.game, npc)
        case PersuasionGame():
            move = _expect(game, action, PersuasionAction)
            return persuasion.resolve(game, move.option_index, character.stats)
        case SequencePuzzleGame():
            move = _expect(game, action, SequencePuzzleAction)
            return sequence_puzzle.resolve(game, move.attempt)
        case RiddleGame():
            move = _expect(game, action, RiddleAction)
            return riddle.resolve(game, move.answer)
        case _:
            assert_never(game)


def reward(game: MiniGame) -> CharacterDelta:
    """What a finished game does to the acting character."""
    if game.status == "active":
        return CharacterDelta()
    won = game.status == "won"
    match game:
        case NegotiationGame():
            if not won or game.last_offer is None:
                return CharacterDelta()
            return CharacterDelta(money=-game.last_offer, items_gained=[game.item])
        case DiceBluffGame():
            return CharacterDelta(money=game.pot if won else -game.pot)
        case PersuasionGame() | SequencePuzzleGame() | RiddleGame():
            return CharacterDelta(xp=CHALLENGE_XP) if won else CharacterDelta()
        case _:
            assert_never(game)
