"""Quest-like goals proposed by the narration service.

Every committed turn ticks an interaction counter. When it runs out, the
next narration request is told a new objective is due; whatever the service
proposes is capped (at most `max_active_objectives` open at once, reward
clamped) before it is added.

Completion is one-way and idempotent: the reward is handed back exactly
once, on the active -> completed transition, and the caller credits it to
the economy.
"""

from __future__ import annotations

import logging
import random
import uuid

from choicecraft.ledger import clamp
from choicecraft.models import Objective, Story
from choicecraft.settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


def next_interval(rng: random.Random, settings: EngineSettings = DEFAULT_SETTINGS) -> int:
    low = settings.objective_interval_min
    high = max(low, settings.objective_interval_max)
    return rng.randint(low, high)


def active(story: Story) -> list[Objective]:
    return [o for o in story.objectives if o.status == "active"]


def can_add(story: Story, settings: EngineSettings = DEFAULT_SETTINGS) -> bool:
    return len(active(story)) < settings.max_active_objectives


def is_due(story: Story) -> bool:
    """Whether the turn about to be played should ask for a new objective."""
    return story.interactions_until_next_objective - 1 <= 0


def tick(story: Story) -> bool:
    """Count one committed turn. Returns True when a new objective is due."""
    story.interactions_until_next_objective -= 1
    return story.interactions_until_next_objective <= 0


def add(
    story: Story,
    description: str,
    token_reward: int,
    rng: random.Random,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Objective | None:
    """Add a proposed objective if the cap allows. Resets the counter."""
    description = description.strip()
    if not description:
        return None
    if not can_add(story, settings):
        logger.info("Objective %r dropped: %d already active", description, len(active(story)))
        return None
    objective = Objective(
        id=str(uuid.uuid4()),
        description=description,
        token_reward=clamp(token_reward, 1, settings.max_objective_reward),
    )
    story.objectives.append(objective)
    story.interactions_until_next_objective = next_interval(rng, settings)
    return objective


def complete(story: Story, objective_id: str) -> int:
    """Mark an objective completed. Returns the reward to credit (0 if the
    objective is unknown or was already completed)."""
    for i, objective in enumerate(story.objectives):
        if objective.id != objective_id:
            continue
        if objective.status == "completed":
            return 0
        story.objectives[i] = objective.model_copy(update={"status": "completed"})
        logger.info("Objective completed: %s", objective.description)
        return objective.token_reward
    logger.warning("Completion for unknown objective %r ignored", objective_id)
    return 0
