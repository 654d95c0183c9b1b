"""Economy — regenerating tokens and bookmarks, the shop, daily rewards.

Regeneration is computed, never scheduled: the number of units a wallet
should hold is a pure function of the stored count, the stored "last regen"
timestamp and the current time. Reading a wallet twice at the same instant
gives the same answer, so redundant or concurrent reads never over-credit.

  tokens     spent on shop actions, earned from objectives (may exceed max)
  bookmarks  one is spent to continue past a chapter end
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel

from choicecraft.errors import InsufficientResource, ValidationError
from choicecraft.models import Wallet
from choicecraft.settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


class ShopItem(BaseModel):
    id: str
    name: str
    description: str
    cost: int
    type: Literal["action", "skill"]
    skill: str | None = None


class TokenPackage(BaseModel):
    id: str
    name: str
    amount: int
    price: str


SHOP_ITEMS: dict[str, ShopItem] = {
    item.id: item
    for item in [
        ShopItem(id="discover_new_scene", name="Discover New Location",
                 description="A new, unique location is added to your story.", cost=15, type="action"),
        ShopItem(id="recruit_playable_character", name="Recruit Playable Character",
                 description="Add a new hero you can control to your story.", cost=20, type="action"),
        ShopItem(id="recruit_ai_companion", name="Recruit AI Companion",
                 description="Add a new AI-controlled character to your story.", cost=15, type="action"),
        ShopItem(id="refill_bookmarks", name="Refill Bookmarks",
                 description="Instantly refill your bookmarks.", cost=10, type="action"),
        ShopItem(id="skill_persuasion", name="Skill: Persuasion",
                 description="Permanently learn the art of diplomacy.", cost=40, type="skill", skill="Persuasion"),
        ShopItem(id="skill_intimidation", name="Skill: Intimidation",
                 description="Permanently learn to command respect through fear.", cost=40, type="skill",
                 skill="Intimidation"),
        ShopItem(id="skill_lockpicking", name="Skill: Lockpicking",
                 description="Permanently learn to bypass simple locks.", cost=30, type="skill", skill="Lockpicking"),
        ShopItem(id="skill_survival", name="Skill: Survivalist",
                 description="Better outcomes in wilderness scenarios.", cost=35, type="skill", skill="Survivalist"),
    ]
}

TOKEN_PACKAGES: dict[str, TokenPackage] = {
    pkg.id: pkg
    for pkg in [
        TokenPackage(id="tokens_10", name="10 Tokens", amount=10, price="£0.99"),
        TokenPackage(id="tokens_20", name="20 Tokens", amount=20, price="£1.79"),
        TokenPackage(id="tokens_50", name="50 Tokens", amount=50, price="£3.49"),
    ]
}


def new_wallet(user_id: str, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> Wallet:
    return Wallet(
        user_id=user_id,
        tokens=settings.max_tokens,
        last_token_regen=now,
        bookmarks=settings.max_bookmarks,
        last_bookmark_regen=now,
    )


# ---------------------------------------------------------------------------
# Regeneration
# ---------------------------------------------------------------------------

def _regen(
    count: int, last: datetime, now: datetime, maximum: int, interval: float
) -> tuple[int, datetime]:
    if count >= maximum:
        return count, now
    elapsed = (now - last).total_seconds()
    units = int(elapsed // interval) if elapsed > 0 else 0
    if units == 0:
        return count, last
    if count + units >= maximum:
        return maximum, now
    return count + units, last + timedelta(seconds=units * interval)


def regenerate(wallet: Wallet, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> Wallet:
    """Return the wallet as it should look at `now`."""
    tokens, token_clock = _regen(
        wallet.tokens, wallet.last_token_regen, now,
        settings.max_tokens, settings.token_regen_seconds,
    )
    bookmarks, bookmark_clock = _regen(
        wallet.bookmarks, wallet.last_bookmark_regen, now,
        settings.max_bookmarks, settings.bookmark_regen_seconds,
    )
    return wallet.model_copy(update={
        "tokens": tokens,
        "last_token_regen": token_clock,
        "bookmarks": bookmarks,
        "last_bookmark_regen": bookmark_clock,
    })


# ---------------------------------------------------------------------------
# Spending and earning
# ---------------------------------------------------------------------------

def consume_tokens(
    wallet: Wallet, amount: int, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS
) -> Wallet:
    wallet = regenerate(wallet, now, settings)
    if wallet.tokens < amount:
        raise InsufficientResource("tokens", amount, wallet.tokens)
    update: dict = {"tokens": wallet.tokens - amount}
    if wallet.tokens >= settings.max_tokens:
        update["last_token_regen"] = now
    return wallet.model_copy(update=update)


def consume_bookmark(wallet: Wallet, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> Wallet:
    wallet = regenerate(wallet, now, settings)
    if wallet.bookmarks < 1:
        raise InsufficientResource("bookmarks", 1, wallet.bookmarks)
    update: dict = {"bookmarks": wallet.bookmarks - 1, "chapters_read": wallet.chapters_read + 1}
    if wallet.bookmarks >= settings.max_bookmarks:
        update["last_bookmark_regen"] = now
    return wallet.model_copy(update=update)


def credit_tokens(wallet: Wallet, amount: int) -> Wallet:
    if amount <= 0:
        return wallet
    return wallet.model_copy(update={"tokens": wallet.tokens + amount})


def refill_bookmarks(wallet: Wallet, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> Wallet:
    return wallet.model_copy(update={
        "bookmarks": max(wallet.bookmarks, settings.max_bookmarks),
        "last_bookmark_regen": now,
    })


def claim_daily_reward(wallet: Wallet, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS) -> Wallet:
    last = wallet.last_daily_reward_claimed
    if last is not None and (now - last).total_seconds() < settings.daily_reward_seconds:
        raise ValidationError("Daily reward already claimed", {"last_claimed": last.isoformat()})
    wallet = credit_tokens(wallet, settings.daily_reward_amount)
    return wallet.model_copy(update={"last_daily_reward_claimed": now})


def purchase(
    wallet: Wallet, item_id: str, now: datetime, settings: EngineSettings = DEFAULT_SETTINGS
) -> tuple[Wallet, ShopItem]:
    """Charge for a shop item. Applying its effect is the caller's job."""
    item = SHOP_ITEMS.get(item_id)
    if item is None:
        raise ValidationError("Unknown shop item", {"item_id": item_id})
    wallet = consume_tokens(wallet, item.cost, now, settings)
    if item.id == "refill_bookmarks":
        wallet = refill_bookmarks(wallet, now, settings)
    logger.info("User %s bought %s for %d tokens", wallet.user_id, item.id, item.cost)
    return wallet, item


def buy_token_package(wallet: Wallet, package_id: str) -> Wallet:
    """Credit a token package. Payment happens outside the core."""
    package = TOKEN_PACKAGES.get(package_id)
    if package is None:
        raise ValidationError("Unknown token package", {"package_id": package_id})
    return credit_tokens(wallet, package.amount)
