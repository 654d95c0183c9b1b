"""The only place the engine talks to the narration service.

Each request renders a prompt, awaits the LLM under a timeout, strips any
markdown fence from the reply and validates it into a proposal model. Every
way that can go wrong (connection error, rate limit, timeout, empty or
malformed output, a template that fails to render) surfaces as
ProposalRejected, which callers treat as "this attempt did not happen".
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from choicecraft.errors import ProposalRejected
from choicecraft.llm import LLM, LLMError, LLMRateLimitError
from choicecraft.models import Character, DiceBluffGame, NegotiationGame, Story
from choicecraft.prompts import (
    DEFAULT_PROMPTS,
    PromptError,
    build_chapter_context,
    build_dice_context,
    build_negotiation_context,
    build_turn_context,
    render_prompt,
)
from choicecraft.proposals import ChapterSummary, DiceBluffMove, NegotiationReply, TurnProposal

logger = logging.getLogger(__name__)

_P = TypeVar("_P", bound=BaseModel)


def _parse_json_output(text: str) -> dict | None:
    """Parse JSON from LLM output, stripping markdown fences."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        data = json.loads(cleaned)
        return data if isinstance(data, dict) else None
    except json.JSONDecodeError as e:
        logger.warning(f"Narration output is not valid JSON: {e}")
        return None


class Narrator:
    """Turns story state into narration requests and replies into proposals.

    Args:
        llm:        Any callable matching the LLM protocol.
        timeout:    Seconds to wait for one reply before rejecting it.
        templates:  Per-stage Handlebars overrides; missing stages use
                    DEFAULT_PROMPTS.
    """

    def __init__(self, llm: LLM, timeout: float = 90.0, templates: dict[str, str] | None = None) -> None:
        self._llm = llm
        self._timeout = timeout
        self._templates = {**DEFAULT_PROMPTS, **(templates or {})}

    async def _request(self, stage: str, context: dict[str, Any], model: type[_P]) -> _P:
        try:
            prompt = render_prompt(self._templates[stage], context)
        except PromptError as e:
            logger.error("Prompt for stage %s failed to render: %s", stage, e)
            raise ProposalRejected("The narration prompt could not be rendered", stage=stage) from e

        try:
            text = await asyncio.wait_for(self._llm(stage, prompt), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Narration stage %s timed out after %ss", stage, self._timeout)
            raise ProposalRejected("The narration service timed out", stage=stage) from e
        except LLMRateLimitError as e:
            logger.warning("Narration stage %s rate limited", stage)
            raise ProposalRejected(
                "The narration service is rate limiting requests", stage=stage, retry_after=e.retry_after
            ) from e
        except LLMError as e:
            logger.warning("Narration stage %s failed: %s", stage, e)
            raise ProposalRejected(str(e), stage=stage) from e

        if not text or not text.strip():
            logger.warning("Narration stage %s returned nothing", stage)
            raise ProposalRejected("The narration service returned an empty reply", stage=stage)

        data = _parse_json_output(text)
        if data is None:
            raise ProposalRejected("The narration service reply was not a JSON object", stage=stage)
        try:
            return model.model_validate(data)
        except SchemaError as e:
            logger.warning("Narration stage %s reply failed validation: %s", stage, e)
            raise ProposalRejected("The narration service reply was malformed", stage=stage) from e

    async def propose_turn(
        self, story: Story, character: Character, choice: str, objective_due: bool = False
    ) -> TurnProposal:
        context = build_turn_context(story, character, choice, objective_due)
        return await self._request("turn", context, TurnProposal)

    async def summarize_chapter(self, story: Story) -> str:
        summary = await self._request("chapter_summary", build_chapter_context(story), ChapterSummary)
        return summary.summary

    async def negotiation_reply(
        self, game: NegotiationGame, offer: int, character: Character
    ) -> NegotiationReply:
        context = build_negotiation_context(game, offer, character)
        return await self._request("negotiation", context, NegotiationReply)

    async def dice_move(self, game: DiceBluffGame) -> DiceBluffMove:
        return await self._request("dice_bluff", build_dice_context(game), DiceBluffMove)
