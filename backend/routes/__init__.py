"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings, check-connection), stories
(create, list, get, start, actions, cancel, acknowledge, continue,
relationships, stat points), mini-games (start, move), co-op (claim, join
with a new character, leave, invite lookup) and economy (wallet, shop,
purchases, token packages, daily reward). Everything that acts on a story is
nested under /api/stories/{story_id}/.

Core errors become HTTP errors in one place, errors.to_http().
"""

from fastapi import APIRouter

from .coop import router as coop_router
from .economy import router as economy_router
from .minigames import router as minigames_router
from .settings import router as settings_router
from .stories import router as stories_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(stories_router)
router.include_router(minigames_router)
router.include_router(coop_router)
router.include_router(economy_router)
