"""The app's single TurnController, built from config.json.

init_engine() is called by create_app(); routes fetch the controller with
get_controller(). Tests pass their own llm/assets to init_engine() to avoid
network calls. reload_engine() rebuilds after a settings change and keeps
those overrides and the per-story locks, so a turn still in flight on the
old controller blocks the new one.
"""

import logging
import random
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from choicecraft.assets import AssetGenerator, HttpAssetGenerator, NullAssetGenerator
from choicecraft.controller import StoryLocks, TurnController
from choicecraft.llm import LLM, HttpLLM, LLMError
from choicecraft.narration import Narrator
from choicecraft.storage import Storage

from backend import config

logger = logging.getLogger(__name__)

_controller: TurnController | None = None
_overrides: dict[str, Any] = {}
_story_locks = StoryLocks()


class UnconfiguredLLM:
    """Stands in until an LLM connection is saved in settings."""

    async def __call__(self, stage: str, prompt: str) -> str:
        raise LLMError("No LLM connection is configured")


def build_llm(cfg: dict[str, Any]) -> LLM:
    conn = cfg["llm_connection"]
    if not conn.get("provider_url"):
        return UnconfiguredLLM()
    return HttpLLM(
        conn["provider_url"],
        api_key=conn.get("api_key", ""),
        provider_format=conn.get("provider_format", "koboldcpp"),
        model=conn.get("model", ""),
    )


def build_assets(cfg: dict[str, Any]) -> AssetGenerator:
    conn = cfg["asset_connection"]
    if not conn.get("provider_url"):
        return NullAssetGenerator()
    return HttpAssetGenerator(conn["provider_url"], api_key=conn.get("api_key", ""), model=conn.get("model", ""))


def init_engine(
    data_dir: Path,
    llm: LLM | None = None,
    assets: AssetGenerator | None = None,
    clock: Callable[[], datetime] | None = None,
    rng: random.Random | None = None,
) -> TurnController:
    global _controller, _overrides, _story_locks
    config.init_config(data_dir)
    _story_locks = StoryLocks()
    _overrides = {"llm": llm, "assets": assets, "clock": clock, "rng": rng}
    _controller = _build()
    return _controller


def reload_engine() -> TurnController:
    global _controller
    _controller = _build()
    return _controller


def _build() -> TurnController:
    cfg = config.get_config()
    settings = config.engine_settings()
    narrator = Narrator(
        _overrides.get("llm") or build_llm(cfg),
        timeout=settings.narration_timeout,
        templates=cfg.get("prompts") or None,
    )
    logger.info("Engine ready (data dir %s)", config.data_dir())
    return TurnController(
        Storage(config.data_dir()),
        narrator,
        assets=_overrides.get("assets") or build_assets(cfg),
        settings=settings,
        clock=_overrides.get("clock"),
        rng=_overrides.get("rng"),
        locks=_story_locks,
    )


def get_controller() -> TurnController:
    assert _controller is not None, "Call init_engine() before using the engine"
    return _controller
