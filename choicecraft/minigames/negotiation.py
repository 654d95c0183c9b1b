"""Negotiation (haggling) — the player names a price for an NPC's item.

An offer at or above the target price is a deal on the spot and the
narration service is never asked. Below it, the service supplies the NPC's
reply and how much the lowball wore on their patience; the engine applies the
damage itself and calls the deal off when patience runs out, whatever the
reply said.
"""

from __future__ import annotations

import logging

from choicecraft.errors import ProposalRejected, ValidationError
from choicecraft.ledger import clamp
from choicecraft.minigames.base import MiniGameResult, require_active
from choicecraft.models import NegotiationGame
from choicecraft.proposals import NegotiationReply
from choicecraft.settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)

PATIENCE_RANGE = (0, 100)


def check_offer(game: NegotiationGame, offer: int, money: int) -> None:
    """Reject offers the character could never pay. Runs before any service call."""
    require_active(game)
    if offer < 0:
        raise ValidationError("Offer must not be negative", {"offer": offer})
    if offer > money:
        raise ValidationError("Offer exceeds the character's money", {"offer": offer, "money": money})


def needs_reply(game: NegotiationGame, offer: int) -> bool:
    return offer < game.target_price


def _counter_offer(
    game: NegotiationGame, offer: int, proposed: int | None, settings: EngineSettings
) -> int | None:
    if proposed is None or not settings.enforce_monotonic_counter_offers:
        return proposed
    counter = proposed
    previous = game.last_counter_offer
    if previous is not None and counter > previous:
        logger.warning("Counter-offer %d above previous %d; clamped", counter, previous)
        counter = previous
    if counter <= offer:
        logger.warning("Counter-offer %d not above the player's offer %d; dropped", counter, offer)
        return None
    return counter


def resolve(
    game: NegotiationGame,
    offer: int,
    reply: NegotiationReply | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> MiniGameResult:
    require_active(game)

    if not needs_reply(game, offer):
        won = game.model_copy(update={"status": "won", "last_offer": offer})
        return MiniGameResult(
            game=won,
            outcome="won",
            message=f"{game.npc_name} accepts {offer} for the {game.item.name}.",
        )

    if reply is None:
        raise ProposalRejected("No reply for a negotiation offer", stage="negotiation")

    damage = clamp(reply.patience_damage, *PATIENCE_RANGE)
    patience = clamp(game.patience - damage, *PATIENCE_RANGE)
    counter = _counter_offer(game, offer, reply.counter_offer, settings)
    update = {
        "patience": patience,
        "last_offer": offer,
        "npc_dialogue": reply.dialogue,
        "last_counter_offer": counter if counter is not None else game.last_counter_offer,
    }

    if patience <= 0:
        update["status"] = "lost"
        return MiniGameResult(game=game.model_copy(update=update), outcome="lost", message="The deal is off.")

    message = f"{game.npc_name} wants more than {offer}."
    if counter is not None:
        message = f"{game.npc_name} counters with {counter}."
    return MiniGameResult(game=game.model_copy(update=update), outcome="active", message=message)
