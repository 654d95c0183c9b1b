"""Wallet, shop and reward endpoints."""

from fastapi import APIRouter

from backend.engine import get_controller
from choicecraft import economy
from choicecraft.errors import StoryError
from choicecraft.models import public_dump

from .errors import to_http
from .models import PurchaseBody

router = APIRouter()


@router.get("/shop")
async def shop():
    """Shop items and token packages."""
    return {
        "items": [item.model_dump() for item in economy.SHOP_ITEMS.values()],
        "token_packages": [pkg.model_dump() for pkg in economy.TOKEN_PACKAGES.values()],
    }


@router.get("/wallets/{user_id}")
async def get_wallet(user_id: str):
    """The user's tokens and bookmarks as of now."""
    try:
        return get_controller().wallet(user_id).model_dump(mode="json")
    except StoryError as e:
        raise to_http(e)


@router.post("/wallets/{user_id}/purchase")
async def purchase(user_id: str, body: PurchaseBody):
    """Buy a shop item, applying it to a story when it affects one."""
    try:
        wallet, story = await get_controller().purchase(
            user_id,
            body.item_id,
            story_id=body.story_id,
            character_id=body.character_id,
            name=body.name,
            description=body.description,
        )
    except StoryError as e:
        raise to_http(e)
    return {
        "wallet": wallet.model_dump(mode="json"),
        "story": public_dump(story) if story is not None else None,
    }


@router.post("/wallets/{user_id}/token-packages/{package_id}")
async def buy_token_package(user_id: str, package_id: str):
    """Credit a token package."""
    try:
        return get_controller().buy_token_package(user_id, package_id).model_dump(mode="json")
    except StoryError as e:
        raise to_http(e)


@router.post("/wallets/{user_id}/daily-reward")
async def claim_daily_reward(user_id: str):
    """Claim the once-a-day token."""
    try:
        return get_controller().claim_daily_reward(user_id).model_dump(mode="json")
    except StoryError as e:
        raise to_http(e)
