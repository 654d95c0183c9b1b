"""Co-op endpoints: claims, joining and leaving."""

from fastapi import APIRouter, HTTPException

from backend.engine import get_controller
from choicecraft.errors import StoryError
from choicecraft.models import public_dump

from .errors import to_http
from .models import ClaimBody, JoinWithNewCharacterBody, UserBody

router = APIRouter()


@router.get("/invites/{code}")
async def find_by_invite(code: str):
    """Look up a co-op story by its invite code."""
    story = get_controller().storage.find_by_invite_code(code)
    if story is None:
        raise HTTPException(404, "No story with that invite code")
    return public_dump(story)


@router.post("/stories/{story_id}/claim")
async def claim_character(story_id: str, body: ClaimBody):
    """Bind the user to an unclaimed playable character."""
    try:
        story = await get_controller().claim(story_id, body.user_id, body.character_id, body.display_name)
    except StoryError as e:
        raise to_http(e)
    return public_dump(story)


@router.post("/stories/{story_id}/join")
async def join_with_new_character(story_id: str, body: JoinWithNewCharacterBody):
    """Create a new playable character and claim it."""
    try:
        story = await get_controller().create_and_claim(
            story_id, body.user_id, body.character, body.display_name
        )
    except StoryError as e:
        raise to_http(e)
    return public_dump(story)


@router.post("/stories/{story_id}/leave")
async def leave_story(story_id: str, body: UserBody):
    """Free the user's character; the turn moves on if it was theirs."""
    try:
        story = await get_controller().leave(story_id, body.user_id)
    except StoryError as e:
        raise to_http(e)
    return public_dump(story)
