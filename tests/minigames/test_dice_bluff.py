"""Tests for the Liar's Dice engine."""

import random

import pytest

from choicecraft.errors import ValidationError
from choicecraft.minigames import dice_bluff
from choicecraft.models import Bid, DiceBluffGame
from choicecraft.proposals import DiceBluffMove


def _game(**fields):
    base = {
        "npc_name": "Vex",
        "player_dice": [2, 2, 1, 5, 6],
        "npc_dice": [1, 3, 3, 4, 1],
    }
    return DiceBluffGame(**{**base, **fields})


def test_new_game_rolls_five_each():
    game = dice_bluff.new_game("Vex", random.Random(2))
    assert len(game.player_dice) == len(game.npc_dice) == 5
    assert all(1 <= d <= 6 for d in game.player_dice + game.npc_dice)
    assert game.turn == "player"


def test_ones_are_wild():
    assert dice_bluff.count_matching([2, 2, 1, 5, 6, 1, 3, 3, 4, 1], 2) == 5


def test_challenging_true_bid_loses():
    game = _game(current_bid=Bid(quantity=4, value=2), last_bidder="npc")
    result = dice_bluff.player_challenge(game)
    assert result.outcome == "lost"


def test_challenging_bluff_wins():
    game = _game(current_bid=Bid(quantity=6, value=2), last_bidder="npc")
    assert dice_bluff.player_challenge(game).outcome == "won"


def test_npc_challenging_true_bid_loses():
    result = dice_bluff.player_bid(_game(), Bid(quantity=4, value=2))
    assert result.game.turn == "npc"
    final = dice_bluff.npc_move(result.game, DiceBluffMove(action="challenge"))
    assert final.outcome == "won"


def test_bid_must_raise():
    game = _game(current_bid=Bid(quantity=3, value=4), last_bidder="npc")
    with pytest.raises(ValidationError):
        dice_bluff.player_bid(game, Bid(quantity=3, value=2))
    with pytest.raises(ValidationError):
        dice_bluff.player_bid(game, Bid(quantity=2, value=6))
    assert dice_bluff.player_bid(game, Bid(quantity=3, value=5)).outcome == "active"
    assert dice_bluff.player_bid(game, Bid(quantity=4, value=1)).outcome == "active"


def test_challenge_without_bid_rejected():
    with pytest.raises(ValidationError):
        dice_bluff.player_challenge(_game())


def test_turns_alternate():
    game = _game(turn="npc", current_bid=Bid(quantity=2, value=3), last_bidder="player")
    with pytest.raises(ValidationError):
        dice_bluff.player_bid(game, Bid(quantity=3, value=3))
    with pytest.raises(ValidationError):
        dice_bluff.npc_move(_game(), DiceBluffMove(action="challenge"))


def test_npc_valid_raise_hands_turn_back():
    game = _game(turn="npc", current_bid=Bid(quantity=2, value=3), last_bidder="player")
    result = dice_bluff.npc_move(game, DiceBluffMove(action="bid", bid=Bid(quantity=3, value=3), dialogue="Three."))
    assert result.outcome == "active"
    assert result.game.turn == "player"
    assert result.game.last_bidder == "npc"
    assert "Three." in result.message


def test_npc_invalid_raise_becomes_challenge():
    # 2 x 3's is true (two threes plus wilds), so the NPC's forced challenge fails
    game = _game(turn="npc", current_bid=Bid(quantity=2, value=3), last_bidder="player")
    result = dice_bluff.npc_move(game, DiceBluffMove(action="bid", bid=Bid(quantity=1, value=6)))
    assert result.outcome == "won"
    assert result.game.current_bid == Bid(quantity=2, value=3)
