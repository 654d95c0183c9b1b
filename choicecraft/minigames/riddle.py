"""Riddle challenge. Answer matching is trimmed and case-insensitive."""

from __future__ import annotations

from choicecraft.errors import ValidationError
from choicecraft.minigames.base import MiniGameResult, require_active
from choicecraft.models import RiddleGame


def normalize(answer: str) -> str:
    return answer.strip().casefold()


def new_riddle(
    question: str,
    answers: list[str],
    npc_name: str | None = None,
    max_attempts: int | None = None,
) -> RiddleGame:
    acceptable = list(dict.fromkeys(normalize(a) for a in answers if a.strip()))
    if not acceptable:
        raise ValidationError("A riddle needs at least one answer")
    return RiddleGame(
        npc_name=npc_name,
        question=question,
        acceptable_answers=acceptable,
        max_attempts=max_attempts,
    )


def resolve(game: RiddleGame, attempt: str) -> MiniGameResult:
    require_active(game)
    attempts = game.attempts + 1
    if normalize(attempt) in {normalize(a) for a in game.acceptable_answers}:
        updated = game.model_copy(update={"status": "won", "attempts": attempts})
        return MiniGameResult(game=updated, outcome="won", message="Correct!")

    if game.max_attempts is not None and attempts >= game.max_attempts:
        updated = game.model_copy(update={"status": "lost", "attempts": attempts})
        return MiniGameResult(game=updated, outcome="lost", message="Out of guesses.")

    updated = game.model_copy(update={"attempts": attempts})
    return MiniGameResult(game=updated, outcome="active", message="That is not it.")
