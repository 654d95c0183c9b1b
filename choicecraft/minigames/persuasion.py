"""Persuasion — talk an NPC round, one stage at a time.

Each option is a stat check: the character's stat must be at least the
option's difficulty. There is no dice roll. One failed check loses the whole
game.
"""

from __future__ import annotations

from choicecraft.errors import ValidationError
from choicecraft.minigames.base import MiniGameResult, require_active
from choicecraft.models import ATTITUDES, Attitude, CharacterStats, PersuasionGame


def _warmer(attitude: Attitude, floor: Attitude = "Hostile") -> Attitude:
    index = min(ATTITUDES.index(attitude) + 1, len(ATTITUDES) - 1)
    return ATTITUDES[max(index, ATTITUDES.index(floor))]


def resolve(game: PersuasionGame, option_index: int, stats: CharacterStats) -> MiniGameResult:
    require_active(game)
    stage = game.stages[game.stage_index]
    if not 0 <= option_index < len(stage.options):
        raise ValidationError("No such option", {"option_index": option_index, "options": len(stage.options)})
    option = stage.options[option_index]
    score = getattr(stats, option.stat)

    if score < option.difficulty:
        updated = game.model_copy(update={"status": "lost", "npc_attitude": "Hostile"})
        return MiniGameResult(
            game=updated,
            outcome="lost",
            message=f"{game.npc_name} is unmoved ({option.stat} {score} < {option.difficulty}).",
        )

    if game.stage_index + 1 >= len(game.stages):
        updated = game.model_copy(update={"status": "won", "npc_attitude": _warmer(game.npc_attitude, "Amused")})
        return MiniGameResult(game=updated, outcome="won", message=f"{game.npc_name} is persuaded.")

    updated = game.model_copy(update={
        "stage_index": game.stage_index + 1,
        "npc_attitude": _warmer(game.npc_attitude),
    })
    return MiniGameResult(game=updated, outcome="active", message=f"{game.npc_name} listens.")
