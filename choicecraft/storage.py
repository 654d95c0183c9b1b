"""JSON file storage.

All state is stored in flat JSON files under a configurable base directory.
There is no database or ORM: reads and writes go through plain helper
methods that load and dump JSON.

Directory layout:

    {base}/
      stories/
        {story_id}.json       ← whole Story document
      wallets/
        {user_id}.json        ← Wallet for one user

A story is always written whole, so a reader sees either the state before a
turn or the state after it. Writes go to a temporary file that is renamed
into place.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

from choicecraft.errors import StoryNotFound, ValidationError
from choicecraft.models import Story, Wallet

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def _check_id(kind: str, value: str) -> str:
    if not _ID_RE.match(value or ""):
        raise ValidationError(f"Invalid {kind} id", {kind: value})
    return value


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._stories = self._base / "stories"
        self._wallets = self._base / "wallets"
        self._stories.mkdir(parents=True, exist_ok=True)
        self._wallets.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _story_file(self, story_id: str) -> Path:
        return self._stories / f"{_check_id('story', story_id)}.json"

    def _wallet_file(self, user_id: str) -> Path:
        return self._wallets / f"{_check_id('user', user_id)}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_text(self, path: Path, text: str) -> None:
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(text)
        os.replace(tmp, path)

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    def get_story(self, story_id: str) -> Story:
        path = self._story_file(story_id)
        if not path.is_file():
            raise StoryNotFound(story_id)
        return Story.model_validate_json(path.read_text())

    def save_story(self, story: Story) -> None:
        self._write_text(self._story_file(story.id), story.model_dump_json(indent=2))
        logger.debug("Saved story %s (status=%s)", story.id, story.status)

    def list_stories(self) -> list[Story]:
        stories = []
        for path in sorted(self._stories.glob("*.json")):
            stories.append(Story.model_validate(self._read_json(path)))
        stories.sort(key=lambda s: s.last_played_at or s.created_at, reverse=True)
        return stories

    def find_by_invite_code(self, code: str) -> Story | None:
        wanted = code.strip().upper()
        for story in self.list_stories():
            if story.is_coop and story.invite_code == wanted:
                return story
        return None

    def delete_story(self, story_id: str) -> bool:
        path = self._story_file(story_id)
        if not path.is_file():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def get_wallet(self, user_id: str) -> Wallet | None:
        path = self._wallet_file(user_id)
        if not path.is_file():
            return None
        return Wallet.model_validate_json(path.read_text())

    def save_wallet(self, wallet: Wallet) -> None:
        self._write_text(self._wallet_file(wallet.user_id), wallet.model_dump_json(indent=2))
