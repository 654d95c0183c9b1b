"""Tests for the persuasion engine."""

import pytest

from choicecraft.errors import ValidationError
from choicecraft.minigames import persuasion
from choicecraft.models import CharacterStats, PersuasionGame, PersuasionOption, PersuasionStage


def _stage(difficulty=4, stat="charisma"):
    return PersuasionStage(
        dialogue="The guard folds his arms.",
        options=[
            PersuasionOption(text="Flatter him", stat=stat, difficulty=difficulty),
            PersuasionOption(text="Quote the law", stat="intellect", difficulty=9),
        ],
    )


def _game(*stages):
    return PersuasionGame(npc_name="Guard", stages=list(stages) or [_stage()])


def test_failed_check_loses_every_time():
    game = _game(_stage(difficulty=6))
    stats = CharacterStats(charisma=5)
    for _ in range(5):
        result = persuasion.resolve(game, 0, stats)
        assert result.outcome == "lost"
        assert result.game.npc_attitude == "Hostile"


def test_meeting_difficulty_passes():
    result = persuasion.resolve(_game(_stage(difficulty=5)), 0, CharacterStats(charisma=5))
    assert result.outcome == "won"


def test_stages_advance_and_warm_attitude():
    game = _game(_stage(), _stage())
    result = persuasion.resolve(game, 0, CharacterStats())
    assert result.outcome == "active"
    assert result.game.stage_index == 1
    assert result.game.npc_attitude == "Amused"


def test_final_stage_wins_at_least_amused():
    game = _game(_stage()).model_copy(update={"npc_attitude": "Annoyed"})
    result = persuasion.resolve(game, 0, CharacterStats())
    assert result.outcome == "won"
    assert result.game.npc_attitude == "Amused"


def test_bad_option_rejected():
    with pytest.raises(ValidationError):
        persuasion.resolve(_game(), 5, CharacterStats())
