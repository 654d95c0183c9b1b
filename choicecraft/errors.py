"""Errors raised by the story core.

Every error is scoped to a single attempt: when one of these propagates, the
attempted turn did not happen and nothing that was committed before it has
changed. The caller layer decides how to word it for the user.
"""

from __future__ import annotations

from typing import Any


class StoryError(Exception):
    """Base class for every error the core raises."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ValidationError(StoryError):
    """The action is malformed or not allowed in the story's current state."""


class NotYourTurn(StoryError):
    """A character other than the turn holder tried to act."""

    def __init__(self, character_id: str, turn_character_id: str | None) -> None:
        super().__init__(
            "It is not this character's turn",
            {"character_id": character_id, "turn_character_id": turn_character_id},
        )
        self.character_id = character_id
        self.turn_character_id = turn_character_id


class ProposalRejected(StoryError):
    """The narration service failed or produced output that could not be used.

    Always retryable: the player may submit the same action again.
    """

    def __init__(
        self,
        message: str = "The narration service did not produce a usable proposal",
        *,
        stage: str = "",
        retry_after: float | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if stage:
            details["stage"] = stage
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(message, details)
        self.stage = stage
        self.retry_after = retry_after
        self.retryable = True


class InsufficientResource(StoryError):
    """Not enough tokens or bookmarks for the requested action."""

    def __init__(self, resource: str, required: int, available: int) -> None:
        super().__init__(
            f"Not enough {resource}",
            {"required": required, "available": available},
        )
        self.resource = resource
        self.required = required
        self.available = available


class TurnInProgress(StoryError):
    """Another action for the same story is still being resolved."""

    def __init__(self, story_id: str) -> None:
        super().__init__("An action is already pending for this story", {"story_id": story_id})
        self.story_id = story_id


class StoryNotFound(StoryError):
    """No story with the given id exists in storage."""

    def __init__(self, story_id: str) -> None:
        super().__init__("Story not found", {"story_id": story_id})
        self.story_id = story_id


class InvariantViolation(StoryError):
    """A reconciled state broke a bound.

    Never raised to callers: reconciliation collects these, logs them and
    repairs the state by clamping.
    """
