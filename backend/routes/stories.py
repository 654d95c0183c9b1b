"""Story lifecycle and narrative turn endpoints."""

from fastapi import APIRouter, HTTPException

from backend.engine import get_controller
from choicecraft import relationships
from choicecraft.errors import StoryError
from choicecraft.models import public_dump

from .errors import to_http
from .models import ActionBody, ActiveCharacterBody, CreateStory, StatPointBody, UserBody

router = APIRouter()


@router.get("/stories")
async def list_stories():
    """List stories, most recently played first."""
    return [
        {
            "id": s.id,
            "title": s.title,
            "status": s.status,
            "is_coop": s.is_coop,
            "chapter": s.chapter,
            "turns": len(s.story_history),
        }
        for s in get_controller().storage.list_stories()
    ]


@router.post("/stories")
async def create_story(body: CreateStory):
    """Create a story in the idle state."""
    try:
        story = await get_controller().create_story(
            body.title,
            body.characters,
            plot=body.plot,
            genre=body.genre,
            location_name=body.location_name,
            scenes=body.scenes,
            is_coop=body.is_coop,
        )
    except StoryError as e:
        raise to_http(e)
    return public_dump(story)


@router.get("/stories/{story_id}")
async def get_story(story_id: str):
    """Get a story (the dice opponent's hand is hidden)."""
    try:
        return public_dump(get_controller().get_story(story_id))
    except StoryError as e:
        raise to_http(e)


@router.delete("/stories/{story_id}")
async def delete_story(story_id: str):
    """Delete a story (409 while an action on it is pending)."""
    try:
        deleted = await get_controller().delete_story(story_id)
    except StoryError as e:
        raise to_http(e)
    if not deleted:
        raise HTTPException(404, "Story not found")
    return {"ok": True}


@router.post("/stories/{story_id}/start")
async def start_story(story_id: str):
    """Move an idle story to playing."""
    try:
        return public_dump(await get_controller().start(story_id))
    except StoryError as e:
        raise to_http(e)


@router.post("/stories/{story_id}/actions")
async def submit_action(story_id: str, body: ActionBody):
    """Play one turn: narrate, reconcile, commit."""
    try:
        outcome = await get_controller().submit_action(story_id, body.user_id, body.character_id, body.text)
    except StoryError as e:
        raise to_http(e)
    return {
        "story": public_dump(outcome.story),
        "events": outcome.events,
        "token_reward": outcome.token_reward,
    }


@router.post("/stories/{story_id}/cancel")
async def cancel_action(story_id: str):
    """Abandon the pending action, if any."""
    return {"cancelled": get_controller().cancel(story_id)}


@router.post("/stories/{story_id}/acknowledge")
async def acknowledge_event(story_id: str):
    """Close the relationship event interstitial."""
    try:
        return public_dump(await get_controller().acknowledge_relationship_event(story_id))
    except StoryError as e:
        raise to_http(e)


@router.post("/stories/{story_id}/continue")
async def continue_chapter(story_id: str, body: UserBody):
    """Spend a bookmark to start the next chapter."""
    try:
        story, wallet = await get_controller().continue_chapter(story_id, body.user_id)
    except StoryError as e:
        raise to_http(e)
    return {"story": public_dump(story), "wallet": wallet.model_dump(mode="json")}


@router.post("/stories/{story_id}/active-character")
async def set_active_character(story_id: str, body: ActiveCharacterBody):
    """Switch the acting character of a single-player story."""
    try:
        return public_dump(await get_controller().set_active_character(story_id, body.character_id))
    except StoryError as e:
        raise to_http(e)


@router.post("/stories/{story_id}/characters/{character_id}/stats")
async def allocate_stat(story_id: str, character_id: str, body: StatPointBody):
    """Spend one unspent stat point."""
    try:
        story = await get_controller().allocate_stat_point(story_id, body.user_id, character_id, body.stat)
    except StoryError as e:
        raise to_http(e)
    return public_dump(story)


@router.get("/stories/{story_id}/relationships/{a}/{b}")
async def relationship_between(story_id: str, a: str, b: str):
    """Both directions of a relationship and the turns that moved it."""
    try:
        story = get_controller().get_story(story_id)
    except StoryError as e:
        raise to_http(e)
    if story.character(a) is None or story.character(b) is None:
        raise HTTPException(404, "Character not found")
    return {
        "a_to_b": relationships.value(story, a, b),
        "b_to_a": relationships.value(story, b, a),
        "history": [entry.model_dump(mode="json") for entry in relationships.history(story, a, b)],
    }
