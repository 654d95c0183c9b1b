"""Tests for mini-game creation, move dispatch and rewards."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from choicecraft import minigames
from choicecraft.errors import ValidationError
from choicecraft.ledger import new_character
from choicecraft.minigames import (
    CHALLENGE_XP,
    DiceBluffAction,
    NegotiationAction,
    RiddleAction,
    SequencePuzzleAction,
)
from choicecraft.models import Bid, DiceBluffGame, Item, NegotiationGame, RiddleGame, SequencePuzzleGame
from choicecraft.proposals import DiceBluffMove, DiceBluffStart, NegotiationReply, NegotiationStart, RiddleStart


@pytest.fixture
def aria():
    return new_character("Aria", is_playable=True, character_id="aria").model_copy(update={"money": 60})


@pytest.fixture
def narrator():
    mock = MagicMock()
    mock.negotiation_reply = AsyncMock(
        return_value=NegotiationReply(dialogue="Too low.", patience_damage=10, counter_offer=45)
    )
    mock.dice_move = AsyncMock(return_value=DiceBluffMove(action="challenge", dialogue="Liar!"))
    return mock


def test_create_from_start():
    rng = random.Random(9)
    game = minigames.create(NegotiationStart(npc_name="Mara", item=Item(name="Lantern"), target_price=40), rng)
    assert isinstance(game, NegotiationGame)
    dice = minigames.create(DiceBluffStart(npc_name="Vex", pot=5), rng)
    assert isinstance(dice, DiceBluffGame)
    assert dice.pot == 5
    riddle = minigames.create(RiddleStart(question="?", acceptable_answers=["Echo"]), rng)
    assert isinstance(riddle, RiddleGame)
    assert riddle.acceptable_answers == ["echo"]


async def test_winning_offer_skips_narrator(aria, narrator):
    game = NegotiationGame(npc_name="Mara", item=Item(name="Lantern"), target_price=40)
    result = await minigames.play(game, NegotiationAction(offer=40), aria, narrator)
    assert result.outcome == "won"
    narrator.negotiation_reply.assert_not_called()


async def test_low_offer_asks_narrator(aria, narrator):
    game = NegotiationGame(npc_name="Mara", item=Item(name="Lantern"), target_price=40)
    result = await minigames.play(game, NegotiationAction(offer=20), aria, narrator)
    assert result.game.last_counter_offer == 45
    narrator.negotiation_reply.assert_awaited_once()


async def test_unaffordable_offer_rejected_before_narrator(aria, narrator):
    game = NegotiationGame(npc_name="Mara", item=Item(name="Lantern"), target_price=400)
    with pytest.raises(ValidationError):
        await minigames.play(game, NegotiationAction(offer=100), aria, narrator)
    narrator.negotiation_reply.assert_not_called()


async def test_dice_bid_then_npc_move(aria, narrator):
    game = DiceBluffGame(npc_name="Vex", player_dice=[2, 2, 1, 5, 6], npc_dice=[1, 3, 3, 4, 1])
    result = await minigames.play(
        game, DiceBluffAction(action="bid", bid=Bid(quantity=4, value=2)), aria, narrator
    )
    # Vex challenges a true bid
    assert result.outcome == "won"
    narrator.dice_move.assert_awaited_once()


async def test_move_must_match_game(aria, narrator):
    game = NegotiationGame(npc_name="Mara", item=Item(name="Lantern"), target_price=40)
    with pytest.raises(ValidationError):
        await minigames.play(game, RiddleAction(answer="echo"), aria, narrator)


async def test_finished_game_rejects_moves(aria, narrator):
    game = RiddleGame(question="?", acceptable_answers=["echo"], status="won")
    with pytest.raises(ValidationError):
        await minigames.play(game, RiddleAction(answer="echo"), aria, narrator)


def test_rewards():
    bought = NegotiationGame(
        npc_name="Mara", item=Item(name="Lantern"), target_price=40, status="won", last_offer=42
    )
    delta = minigames.reward(bought)
    assert delta.money == -42
    assert [i.name for i in delta.items_gained] == ["Lantern"]

    lost_dice = DiceBluffGame(npc_name="Vex", player_dice=[1], npc_dice=[2], pot=10, status="lost")
    assert minigames.reward(lost_dice).money == -10

    solved = RiddleGame(question="?", acceptable_answers=["echo"], status="won")
    assert minigames.reward(solved).xp == CHALLENGE_XP

    running = RiddleGame(question="?", acceptable_answers=["echo"])
    assert minigames.reward(running).xp == 0


async def test_puzzle_move_dispatch(aria, narrator):
    puzzle = SequencePuzzleGame(target_sequence=["key", "circle", "square"])
    result = await minigames.play(puzzle, SequencePuzzleAction(attempt=["key", "circle", "square"]), aria, narrator)
    assert result.outcome == "won"
