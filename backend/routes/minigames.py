"""Mini-game endpoints."""

from fastapi import APIRouter

from backend.engine import get_controller
from choicecraft.errors import StoryError
from choicecraft.models import public_dump

from .errors import to_http
from .models import MiniGameMoveBody, StartMiniGameBody

router = APIRouter()


@router.post("/stories/{story_id}/mini-game")
async def start_mini_game(story_id: str, body: StartMiniGameBody):
    """Start a mini-game for the acting character."""
    try:
        story = await get_controller().start_mini_game(story_id, body.user_id, body.character_id, body.game)
    except StoryError as e:
        raise to_http(e)
    return public_dump(story)


@router.post("/stories/{story_id}/mini-game/moves")
async def play_mini_game(story_id: str, body: MiniGameMoveBody):
    """Play one move in the running mini-game."""
    try:
        story, result = await get_controller().play_mini_game(
            story_id, body.user_id, body.character_id, body.move
        )
    except StoryError as e:
        raise to_http(e)
    return {
        "story": public_dump(story),
        "outcome": result.outcome,
        "feedback": result.feedback,
        "message": result.message,
    }
