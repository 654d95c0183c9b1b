"""Engine tuning knobs.

Defaults mirror the values the game shipped with. The backend persists
overrides under the "engine" key of config.json and builds an
EngineSettings from them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class EngineSettings(BaseModel):
    # Turn flow
    chapter_length: int = Field(10, ge=1)
    min_action_length: int = Field(5, ge=1)
    max_action_length: int = Field(200, ge=1)
    narration_timeout: float = Field(90.0, gt=0)

    # Relationships
    relationship_event_threshold: int = Field(80, ge=1, le=100)

    # Objectives
    max_active_objectives: int = Field(2, ge=0)
    objective_interval_min: int = Field(6, ge=1)
    objective_interval_max: int = Field(8, ge=1)
    max_objective_reward: int = Field(1, ge=1)

    # Negotiation
    enforce_monotonic_counter_offers: bool = True

    # Economy
    max_tokens: int = Field(10, ge=0)
    max_bookmarks: int = Field(3, ge=0)
    token_regen_seconds: float = Field(3600.0, gt=0)
    bookmark_regen_seconds: float = Field(3600.0, gt=0)
    daily_reward_amount: int = Field(1, ge=0)
    daily_reward_seconds: float = Field(24 * 60 * 60, gt=0)


DEFAULT_SETTINGS = EngineSettings()
