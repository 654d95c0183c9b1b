"""SequencePuzzle (lockpicking) — guess the order of the lock's symbols.

Feedback marks each position correct or incorrect and never says which
symbol belonged there.
"""

from __future__ import annotations

import random

from choicecraft.errors import ValidationError
from choicecraft.minigames.base import MiniGameResult, PositionFeedback, require_active
from choicecraft.models import Difficulty, SequencePuzzleGame

SYMBOLS = ("triangle", "circle", "square", "key")
LENGTHS: dict[str, int] = {"easy": 3, "medium": 4, "hard": 5}


def new_puzzle(
    difficulty: Difficulty, rng: random.Random, max_attempts: int | None = None
) -> SequencePuzzleGame:
    length = LENGTHS[difficulty]
    return SequencePuzzleGame(
        target_sequence=[rng.choice(SYMBOLS) for _ in range(length)],
        difficulty=difficulty,
        max_attempts=max_attempts,
    )


def feedback(target: list[str], attempt: list[str]) -> list[PositionFeedback]:
    return ["correct" if a == t.lower() else "incorrect" for a, t in zip(attempt, target)]


def resolve(game: SequencePuzzleGame, attempt: list[str]) -> MiniGameResult:
    require_active(game)
    attempt = [symbol.strip().lower() for symbol in attempt]
    if len(attempt) != len(game.target_sequence):
        raise ValidationError(
            "Attempt length does not match the lock",
            {"expected": len(game.target_sequence), "got": len(attempt)},
        )

    attempts = game.attempts + 1
    marks = feedback(game.target_sequence, attempt)
    if all(mark == "correct" for mark in marks):
        updated = game.model_copy(update={"status": "won", "attempts": attempts})
        return MiniGameResult(game=updated, outcome="won", feedback=marks, message="The lock clicks open.")

    if game.max_attempts is not None and attempts >= game.max_attempts:
        updated = game.model_copy(update={"status": "lost", "attempts": attempts})
        return MiniGameResult(game=updated, outcome="lost", feedback=marks, message="The pick snaps.")

    wrong = marks.count("incorrect")
    updated = game.model_copy(update={"attempts": attempts})
    return MiniGameResult(
        game=updated,
        outcome="active",
        feedback=marks,
        message=f"{wrong} of {len(marks)} pins are wrong.",
    )
