"""Narrative turn controller, the story state machine.

    idle ──start──▶ playing ──action──▶ playing
                      │  ▲
                      │  └──acknowledge── relationship-event
                      │  └──continue───── chapter-end  (spends a bookmark)
                      └──────────────────▶ ended        (terminal)

Every operation follows the same shape: load the story, validate and gate
(nothing is written if that fails), compute the next state on a copy, then
commit it with one save. Narration and asset calls happen between the gate
and the commit, so a failure there leaves storage exactly as it was.

Concurrency: one writer per story. A second operation on a story whose
previous one is still waiting on the narration service is rejected with
TurnInProgress. The locks live in a StoryLocks shared by every controller
built over the same data, so rebuilding after a settings change never opens
a second writer. cancel() abandons the pending narration for a story; its
proposal is dropped and nothing is committed.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel, Field

from choicecraft import economy, minigames, objectives, reconcile, relationships, turns
from choicecraft.assets import AssetGenerator, NullAssetGenerator, generate_url
from choicecraft.errors import (
    InsufficientResource,
    NotYourTurn,
    ProposalRejected,
    TurnInProgress,
    ValidationError,
)
from choicecraft.ledger import CharacterDelta, allocate_stat_point, apply_delta, new_character
from choicecraft.minigames import MiniGameAction, MiniGameResult
from choicecraft.models import (
    Character,
    CharacterStats,
    Scene,
    StatName,
    Story,
    Wallet,
    utcnow,
)
from choicecraft.narration import Narrator
from choicecraft.proposals import MiniGameStart
from choicecraft.reconcile import TurnOutcome
from choicecraft.settings import DEFAULT_SETTINGS, EngineSettings
from choicecraft.storage import Storage

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class CharacterSeed(BaseModel):
    name: str = Field(min_length=1)
    backstory: str = ""
    traits: str = ""
    is_playable: bool = True
    stats: CharacterStats = Field(default_factory=CharacterStats)


class StoryLocks:
    """Per-story writer locks and in-flight narration tasks.

    Outlives any one TurnController: the engine hands the same instance to
    every controller it rebuilds, so an operation still running on an old
    controller blocks the new one.
    """

    def __init__(self) -> None:
        self.locks: dict[str, asyncio.Lock] = {}
        self.pending: dict[str, asyncio.Task] = {}


class TurnController:
    """Runs every mechanical story operation against a Storage."""

    def __init__(
        self,
        storage: Storage,
        narrator: Narrator,
        assets: AssetGenerator | None = None,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
        locks: StoryLocks | None = None,
    ) -> None:
        self._storage = storage
        self._narrator = narrator
        self._assets = assets or NullAssetGenerator()
        self._settings = settings or DEFAULT_SETTINGS
        self._clock = clock or utcnow
        self._rng = rng or random.Random()
        shared = locks or StoryLocks()
        self._locks = shared.locks
        self._pending = shared.pending

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Serialisation and cancellation
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self, story_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(story_id, asyncio.Lock())
        if lock.locked():
            raise TurnInProgress(story_id)
        async with lock:
            yield

    async def _run_pending(self, story_id: str, work: Awaitable[_T]) -> _T:
        """Await collaborator calls as a cancellable task."""
        task = asyncio.ensure_future(work)
        self._pending[story_id] = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.info("Pending action for story %s was cancelled", story_id)
            raise ProposalRejected("The action was cancelled", stage="cancelled") from None
        finally:
            self._pending.pop(story_id, None)

    def is_pending(self, story_id: str) -> bool:
        return story_id in self._pending

    def cancel(self, story_id: str) -> bool:
        """Abandon the in-flight action for a story. Returns False if none."""
        task = self._pending.get(story_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _require_playing(self, story: Story) -> None:
        if story.status == "ended":
            raise ValidationError("The story has ended", {"story_id": story.id})
        if story.status != "playing":
            raise ValidationError(f"The story is {story.status}", {"story_id": story.id})

    def _require_not_ended(self, story: Story) -> None:
        if story.status == "ended":
            raise ValidationError("The story has ended", {"story_id": story.id})

    def _gate_actor(self, story: Story, user_id: str, character_id: str) -> Character:
        char = story.character(character_id)
        if char is None:
            raise ValidationError("Character not found", {"character_id": character_id})
        if story.is_coop:
            player = turns.player_for_user(story, user_id)
            if player is None or player.character_id != character_id:
                raise NotYourTurn(character_id, story.turn_character_id)
        turns.check_turn(story, character_id)
        return char

    def _validate_text(self, text: str) -> str:
        choice = (text or "").strip()
        low, high = self._settings.min_action_length, self._settings.max_action_length
        if not low <= len(choice) <= high:
            raise ValidationError(
                f"Actions must be between {low} and {high} characters",
                {"length": len(choice)},
            )
        return choice

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    def get_story(self, story_id: str) -> Story:
        return self._storage.get_story(story_id)

    async def create_story(
        self,
        title: str,
        characters: list[CharacterSeed],
        *,
        plot: str = "",
        genre: str = "Fantasy",
        location_name: str = "",
        scenes: list[str] | None = None,
        is_coop: bool = False,
    ) -> Story:
        if not title.strip():
            raise ValidationError("A story needs a title")
        if not any(seed.is_playable for seed in characters):
            raise ValidationError("A story needs at least one playable character")

        story = Story(
            id=uuid.uuid4().hex,
            title=title.strip(),
            plot=plot,
            genre=genre,
            is_coop=is_coop,
            interactions_until_next_objective=objectives.next_interval(self._rng, self._settings),
        )
        for seed in characters:
            char = new_character(
                seed.name.strip(),
                is_playable=seed.is_playable,
                backstory=seed.backstory,
                traits=seed.traits,
                stats=seed.stats,
            )
            char.profile_image_url = await generate_url(
                self._assets, "character", f"{char.name}. {char.traits}".strip()
            )
            story.characters.append(char)
            relationships.link_new_character(story, char.id)

        for name in scenes or []:
            if name.strip():
                story.scenes.append(Scene(
                    id=str(uuid.uuid4()),
                    name=name.strip(),
                    url=await generate_url(self._assets, "scene", name),
                ))
        story.location_name = location_name.strip() or (story.scenes[0].name if story.scenes else story.location_name)

        if is_coop:
            story.invite_code = turns.generate_invite_code(self._rng)
        else:
            story.active_character_id = next(c.id for c in story.characters if c.is_playable)

        self._storage.save_story(story)
        logger.info("Created story %s (%s, coop=%s)", story.id, story.title, is_coop)
        return story

    async def delete_story(self, story_id: str) -> bool:
        """Delete a story. Refused while an operation on it is in flight."""
        async with self._exclusive(story_id):
            deleted = self._storage.delete_story(story_id)
        if deleted:
            logger.info("Deleted story %s", story_id)
        return deleted

    async def start(self, story_id: str) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id)
            if story.status != "idle":
                raise ValidationError(f"The story is {story.status}", {"story_id": story_id})
            if turns.acting_character_id(story) is None:
                raise ValidationError("No character is ready to act", {"story_id": story_id})
            story = story.model_copy(update={"status": "playing", "last_played_at": self._clock()})
            self._storage.save_story(story)
            logger.info("Story %s started", story_id)
            return story

    async def submit_action(self, story_id: str, user_id: str, character_id: str, text: str) -> TurnOutcome:
        """Play one narrative turn."""
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id)
            self._require_playing(story)
            if story.active_mini_game is not None:
                raise ValidationError("Finish the mini-game first", {"type": story.active_mini_game.type})
            choice = self._validate_text(text)
            self._gate_actor(story, user_id, character_id)

            outcome = await self._run_pending(story_id, self._narrate_turn(story, character_id, choice))

            wallet = None
            if outcome.token_reward:
                wallet = economy.credit_tokens(self._load_wallet(user_id), outcome.token_reward)
            self._storage.save_story(outcome.story)
            if wallet is not None:
                self._storage.save_wallet(wallet)
            return outcome

    async def _narrate_turn(self, story: Story, character_id: str, choice: str) -> TurnOutcome:
        actor = story.character(character_id)
        due = objectives.is_due(story) and objectives.can_add(story, self._settings)
        proposal = await self._narrator.propose_turn(story, actor, choice, due)
        outcome = reconcile.apply_turn(
            story, character_id, choice, proposal,
            now=self._clock(), rng=self._rng, settings=self._settings,
        )
        updated = outcome.story

        if outcome.new_scene_id:
            scene = next(s for s in updated.scenes if s.id == outcome.new_scene_id)
            scene.url = await generate_url(self._assets, "scene", scene.prompt or scene.name)
        event = updated.last_relationship_event
        if "relationship_event" in outcome.events and event is not None:
            prompt = proposal.relationship_event.image_prompt if proposal.relationship_event else ""
            event.image_url = await generate_url(self._assets, "relationship_event", prompt or event.description)
        if updated.status == "chapter-end" or updated.chapter_end_pending:
            updated.last_chapter_summary = await self._narrator.summarize_chapter(updated)
        return outcome

    async def acknowledge_relationship_event(self, story_id: str) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id)
            if story.status != "relationship-event":
                raise ValidationError("There is no relationship event to acknowledge")
            status = "chapter-end" if story.chapter_end_pending else "playing"
            story = story.model_copy(update={"status": status, "chapter_end_pending": False})
            self._storage.save_story(story)
            logger.info("Story %s relationship event acknowledged -> %s", story_id, status)
            return story

    async def continue_chapter(self, story_id: str, user_id: str) -> tuple[Story, Wallet]:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id)
            if story.status != "chapter-end":
                raise ValidationError("The chapter has not ended")
            wallet = economy.consume_bookmark(self._load_wallet(user_id), self._clock(), self._settings)
            story = story.model_copy(update={
                "status": "playing",
                "chapter": story.chapter + 1,
                "last_chapter_summary": None,
            })
            self._storage.save_story(story)
            self._storage.save_wallet(wallet)
            logger.info("Story %s continues into chapter %d", story_id, story.chapter)
            return story, wallet

    # ------------------------------------------------------------------
    # Mini-games
    # ------------------------------------------------------------------

    async def start_mini_game(self, story_id: str, user_id: str, character_id: str, start: MiniGameStart) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id)
            self._require_playing(story)
            if story.active_mini_game is not None:
                raise ValidationError("A mini-game is already running", {"type": story.active_mini_game.type})
            self._gate_actor(story, user_id, character_id)
            story = story.model_copy(update={"active_mini_game": minigames.create(start, self._rng)})
            self._storage.save_story(story)
            logger.info("Mini-game %s started in story %s", start.type, story_id)
            return story

    async def play_mini_game(
        self, story_id: str, user_id: str, character_id: str, action: MiniGameAction
    ) -> tuple[Story, MiniGameResult]:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id)
            self._require_playing(story)
            game = story.active_mini_game
            if game is None:
                raise ValidationError("No mini-game is running")
            char = self._gate_actor(story, user_id, character_id)

            result = await self._run_pending(
                story_id, minigames.play(game, action, char, self._narrator, self._settings)
            )
            story = reconcile.apply_mini_game_result(story, character_id, result)
            self._storage.save_story(story)
            return story, result

    # ------------------------------------------------------------------
    # Co-op and characters
    # ------------------------------------------------------------------

    async def claim(self, story_id: str, user_id: str, character_id: str, display_name: str = "New Player") -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id).model_copy(deep=True)
            self._require_not_ended(story)
            self._require_coop(story)
            turns.claim(story, user_id, character_id, display_name)
            self._storage.save_story(story)
            return story

    async def create_and_claim(
        self, story_id: str, user_id: str, seed: CharacterSeed, display_name: str = "New Player"
    ) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id).model_copy(deep=True)
            self._require_not_ended(story)
            self._require_coop(story)
            char = turns.create_and_claim(
                story, user_id, seed.name,
                backstory=seed.backstory, traits=seed.traits, stats=seed.stats, display_name=display_name,
            )
            char.profile_image_url = await generate_url(
                self._assets, "character", f"{char.name}. {char.traits}".strip()
            )
            self._storage.save_story(story)
            return story

    async def leave(self, story_id: str, user_id: str) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id).model_copy(deep=True)
            turns.leave(story, user_id)
            self._storage.save_story(story)
            return story

    def _require_coop(self, story: Story) -> None:
        if not story.is_coop:
            raise ValidationError("This is not a co-op story", {"story_id": story.id})

    async def set_active_character(self, story_id: str, character_id: str) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id).model_copy(deep=True)
            self._require_not_ended(story)
            turns.set_active_character(story, character_id)
            self._storage.save_story(story)
            return story

    async def allocate_stat_point(self, story_id: str, user_id: str, character_id: str, stat: StatName) -> Story:
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id).model_copy(deep=True)
            self._require_not_ended(story)
            char = story.character(character_id)
            if char is None:
                raise ValidationError("Character not found", {"character_id": character_id})
            if story.is_coop:
                player = turns.player_for_user(story, user_id)
                if player is None or player.character_id != character_id:
                    raise ValidationError("You do not control this character")
            story.replace_character(allocate_stat_point(char, stat))
            self._storage.save_story(story)
            return story

    # ------------------------------------------------------------------
    # Economy
    # ------------------------------------------------------------------

    def _load_wallet(self, user_id: str) -> Wallet:
        now = self._clock()
        wallet = self._storage.get_wallet(user_id) or economy.new_wallet(user_id, now, self._settings)
        return economy.regenerate(wallet, now, self._settings)

    def wallet(self, user_id: str) -> Wallet:
        """The user's wallet as of now. Reading never writes."""
        return self._load_wallet(user_id)

    def claim_daily_reward(self, user_id: str) -> Wallet:
        wallet = economy.claim_daily_reward(self._load_wallet(user_id), self._clock(), self._settings)
        self._storage.save_wallet(wallet)
        return wallet

    def buy_token_package(self, user_id: str, package_id: str) -> Wallet:
        wallet = economy.buy_token_package(self._load_wallet(user_id), package_id)
        self._storage.save_wallet(wallet)
        return wallet

    async def purchase(
        self,
        user_id: str,
        item_id: str,
        *,
        story_id: str | None = None,
        character_id: str | None = None,
        name: str = "",
        description: str = "",
    ) -> tuple[Wallet, Story | None]:
        """Buy a shop item and apply it to the story it affects."""
        item = economy.SHOP_ITEMS.get(item_id)
        if item is None:
            raise ValidationError("Unknown shop item", {"item_id": item_id})
        if item.id == "refill_bookmarks":
            wallet, _ = economy.purchase(self._load_wallet(user_id), item_id, self._clock(), self._settings)
            self._storage.save_wallet(wallet)
            return wallet, None

        if story_id is None:
            raise ValidationError("This item applies to a story", {"item_id": item_id})
        async with self._exclusive(story_id):
            story = self._storage.get_story(story_id).model_copy(deep=True)
            self._require_not_ended(story)
            self._check_affordable(user_id, item.cost)

            if item.type == "skill":
                char = story.character(character_id)
                if char is None:
                    raise ValidationError("Pick a character to learn the skill", {"character_id": character_id})
                story.replace_character(apply_delta(char, CharacterDelta(skill_gained=item.skill)))
            elif item.id == "discover_new_scene":
                await self._add_scene(story, name, description)
            else:
                await self._recruit(story, name, description, playable=item.id == "recruit_playable_character")

            wallet, _ = economy.purchase(self._load_wallet(user_id), item_id, self._clock(), self._settings)
            self._storage.save_story(story)
            self._storage.save_wallet(wallet)
            return wallet, story

    def _check_affordable(self, user_id: str, cost: int) -> None:
        available = self._load_wallet(user_id).tokens
        if available < cost:
            raise InsufficientResource("tokens", cost, available)

    async def _add_scene(self, story: Story, name: str, prompt: str) -> None:
        name = name.strip()
        if not name:
            raise ValidationError("A new location needs a name")
        if any(s.name.lower() == name.lower() for s in story.scenes):
            raise ValidationError("That location already exists", {"name": name})
        url = await generate_url(self._assets, "scene", prompt or name)
        story.scenes.append(Scene(id=str(uuid.uuid4()), name=name, url=url, prompt=prompt))

    async def _recruit(self, story: Story, name: str, traits: str, playable: bool) -> None:
        name = name.strip()
        if not name:
            raise ValidationError("A new character needs a name")
        if story.character_by_name(name) is not None:
            raise ValidationError("A character with that name already exists", {"name": name})
        char = new_character(name, is_playable=playable, traits=traits)
        char.profile_image_url = await generate_url(self._assets, "character", f"{name}. {traits}".strip())
        story.characters.append(char)
        relationships.link_new_character(story, char.id)
