"""Tests for wallets: regeneration, spending, rewards and the shop."""

from datetime import datetime, timedelta, timezone

import pytest

from choicecraft import economy
from choicecraft.errors import InsufficientResource, ValidationError
from choicecraft.models import Wallet

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def _wallet(**fields) -> Wallet:
    base = {"user_id": "u1", "last_token_regen": T0, "last_bookmark_regen": T0}
    return Wallet(**{**base, **fields})


# ---------------------------------------------------------------------------
# Regeneration
# ---------------------------------------------------------------------------

def test_new_wallet_is_full():
    wallet = economy.new_wallet("u1", T0)
    assert (wallet.tokens, wallet.bookmarks) == (10, 3)


def test_regenerates_one_unit_per_interval():
    wallet = _wallet(tokens=4, bookmarks=0)
    later = economy.regenerate(wallet, T0 + 2 * HOUR + timedelta(minutes=30))
    assert later.tokens == 6
    assert later.bookmarks == 2
    # The leftover half hour is kept for the next unit
    assert later.last_token_regen == T0 + 2 * HOUR


def test_regeneration_caps_at_max():
    later = economy.regenerate(_wallet(tokens=8, bookmarks=2), T0 + 10 * HOUR)
    assert later.tokens == 10
    assert later.bookmarks == 3


def test_regeneration_is_idempotent():
    now = T0 + 3 * HOUR + timedelta(minutes=10)
    once = economy.regenerate(_wallet(tokens=1, bookmarks=0), now)
    twice = economy.regenerate(once, now)
    assert once == twice


def test_split_reads_equal_single_read():
    wallet = _wallet(tokens=0)
    stepwise = economy.regenerate(economy.regenerate(wallet, T0 + 90 * timedelta(minutes=1)), T0 + 5 * HOUR)
    direct = economy.regenerate(wallet, T0 + 5 * HOUR)
    assert stepwise.tokens == direct.tokens == 5


def test_earned_tokens_above_max_do_not_regenerate():
    wallet = _wallet(tokens=15)
    assert economy.regenerate(wallet, T0 + 5 * HOUR).tokens == 15


# ---------------------------------------------------------------------------
# Spending and earning
# ---------------------------------------------------------------------------

def test_consume_bookmark():
    wallet = economy.consume_bookmark(_wallet(bookmarks=3), T0)
    assert wallet.bookmarks == 2
    assert wallet.chapters_read == 1


def test_consume_bookmark_when_empty_raises():
    with pytest.raises(InsufficientResource) as exc:
        economy.consume_bookmark(_wallet(bookmarks=0), T0 + timedelta(minutes=5))
    assert exc.value.resource == "bookmarks"


def test_consume_from_full_restarts_clock():
    wallet = economy.consume_tokens(_wallet(tokens=10), 3, T0 + 5 * HOUR)
    assert wallet.tokens == 7
    assert wallet.last_token_regen == T0 + 5 * HOUR


def test_consume_more_than_held_raises():
    with pytest.raises(InsufficientResource):
        economy.consume_tokens(_wallet(tokens=2), 5, T0)


def test_credit_tokens_may_exceed_max():
    assert economy.credit_tokens(_wallet(tokens=10), 5).tokens == 15


def test_daily_reward_once_per_day():
    claimed = economy.claim_daily_reward(_wallet(tokens=3), T0)
    assert claimed.tokens == 4
    with pytest.raises(ValidationError):
        economy.claim_daily_reward(claimed, T0 + 23 * HOUR)
    again = economy.claim_daily_reward(claimed, T0 + 24 * HOUR)
    assert again.tokens == 5


# ---------------------------------------------------------------------------
# Shop
# ---------------------------------------------------------------------------

def test_purchase_charges_cost():
    wallet, item = economy.purchase(_wallet(tokens=40), "skill_lockpicking", T0)
    assert item.skill == "Lockpicking"
    assert wallet.tokens == 10


def test_purchase_unaffordable_raises():
    with pytest.raises(InsufficientResource):
        economy.purchase(_wallet(tokens=5), "discover_new_scene", T0)


def test_refill_bookmarks():
    wallet, _ = economy.purchase(_wallet(tokens=10, bookmarks=0), "refill_bookmarks", T0)
    assert wallet.bookmarks == 3
    assert wallet.tokens == 0


def test_unknown_item_rejected():
    with pytest.raises(ValidationError):
        economy.purchase(_wallet(), "castle", T0)


def test_token_package():
    assert economy.buy_token_package(_wallet(tokens=2), "tokens_20").tokens == 22
    with pytest.raises(ValidationError):
        economy.buy_token_package(_wallet(), "tokens_1000")
