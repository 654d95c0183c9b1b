"""DiceBluff (Liar's Dice) against one NPC.

Each side holds five dice; only the player's are visible. Sides alternate
strictly, each either raising the bid or challenging the last one. Ones are
wild: when a bid is challenged every die showing the bid's value or a one
counts towards it. If fewer dice match than the bid claims, the challenger
wins.

The NPC's move comes from the narration service and is validated here; a
raise that is not actually higher than the current bid is treated as a
challenge.
"""

from __future__ import annotations

import logging
import random

from choicecraft.errors import ValidationError
from choicecraft.minigames.base import MiniGameResult, require_active
from choicecraft.models import Bid, DiceBluffGame
from choicecraft.proposals import DiceBluffMove

logger = logging.getLogger(__name__)

DICE_PER_HAND = 5
WILD = 1


def roll_dice(rng: random.Random, count: int = DICE_PER_HAND) -> list[int]:
    return [rng.randint(1, 6) for _ in range(count)]


def new_game(npc_name: str, rng: random.Random, pot: int = 10) -> DiceBluffGame:
    return DiceBluffGame(
        npc_name=npc_name,
        player_dice=roll_dice(rng),
        npc_dice=roll_dice(rng),
        pot=pot,
        last_action_message=f"{npc_name} shakes the cup. Make the first bid.",
    )


def is_valid_raise(new: Bid, current: Bid | None) -> bool:
    if current is None:
        return True
    return new.quantity > current.quantity or (
        new.quantity == current.quantity and new.value > current.value
    )


def count_matching(dice: list[int], value: int) -> int:
    return sum(1 for d in dice if d == value or d == WILD)


def _describe(bid: Bid) -> str:
    return f"{bid.quantity} x {bid.value}'s"


def player_bid(game: DiceBluffGame, bid: Bid) -> MiniGameResult:
    require_active(game)
    if game.turn != "player":
        raise ValidationError("It is the NPC's move")
    if not is_valid_raise(bid, game.current_bid):
        raise ValidationError(
            "A new bid must raise the quantity, or keep it and raise the value",
            {"bid": _describe(bid), "current": _describe(game.current_bid) if game.current_bid else None},
        )
    message = f"You bid {_describe(bid)}."
    updated = game.model_copy(update={
        "current_bid": bid,
        "last_bidder": "player",
        "turn": "npc",
        "last_action_message": message,
    })
    return MiniGameResult(game=updated, outcome="active", message=message)


def _challenge(game: DiceBluffGame, challenger: str, prefix: str = "") -> MiniGameResult:
    bid = game.current_bid
    if bid is None:
        raise ValidationError("There is no bid to challenge")

    count = count_matching(game.player_dice + game.npc_dice, bid.value)
    bid_false = count < bid.quantity
    player_won = (challenger == "player") == bid_false
    status = "won" if player_won else "lost"

    verdict = "The bid was a bluff." if bid_false else "The bid holds."
    stake = f"You win {game.pot}." if player_won else f"You lose {game.pot}."
    message = f"{prefix}{count} dice show {bid.value} or a wild one. {verdict} {stake}"
    updated = game.model_copy(update={"status": status, "last_action_message": message})
    return MiniGameResult(game=updated, outcome=status, message=message)


def player_challenge(game: DiceBluffGame) -> MiniGameResult:
    require_active(game)
    if game.turn != "player":
        raise ValidationError("It is the NPC's move")
    return _challenge(game, "player", prefix="You call the bluff. ")


def npc_move(game: DiceBluffGame, move: DiceBluffMove) -> MiniGameResult:
    require_active(game)
    if game.turn != "npc":
        raise ValidationError("It is the player's move")

    said = f'{game.npc_name}: "{move.dialogue}" ' if move.dialogue else ""
    if move.action == "bid":
        if move.bid is not None and is_valid_raise(move.bid, game.current_bid):
            message = f"{said}{game.npc_name} bids {_describe(move.bid)}."
            updated = game.model_copy(update={
                "current_bid": move.bid,
                "last_bidder": "npc",
                "turn": "player",
                "last_action_message": message,
            })
            return MiniGameResult(game=updated, outcome="active", message=message)
        logger.warning("NPC bid %s does not raise %s; treating as a challenge", move.bid, game.current_bid)

    return _challenge(game, "npc", prefix=f"{said}{game.npc_name} calls your bluff. ")
