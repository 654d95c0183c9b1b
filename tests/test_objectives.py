"""Tests for the objective tracker."""

import random

from choicecraft import objectives
from choicecraft.models import Objective
from choicecraft.settings import EngineSettings


def test_next_interval_in_range():
    rng = random.Random(3)
    assert all(6 <= objectives.next_interval(rng) <= 8 for _ in range(50))


def test_tick_counts_down_to_due(make_story):
    story = make_story(interactions_until_next_objective=2)
    assert not objectives.is_due(story)
    assert objectives.tick(story) is False
    assert objectives.is_due(story)
    assert objectives.tick(story) is True


def test_add_respects_cap(make_story):
    story = make_story()
    rng = random.Random(1)
    assert objectives.add(story, "Find the map", 1, rng)
    assert objectives.add(story, "Bribe the guard", 1, rng)
    assert objectives.add(story, "Steal the crown", 1, rng) is None
    assert len(objectives.active(story)) == 2


def test_add_clamps_reward_and_resets_counter(make_story):
    story = make_story(interactions_until_next_objective=0)
    objective = objectives.add(story, "Find the map", 50, random.Random(1))
    assert objective.token_reward == 1
    assert 6 <= story.interactions_until_next_objective <= 8


def test_add_ignores_blank_description(make_story):
    story = make_story()
    assert objectives.add(story, "   ", 1, random.Random(1)) is None
    assert story.objectives == []


def test_complete_twice_rewards_once(make_story):
    story = make_story(objectives=[Objective(id="o1", description="Find the map", token_reward=1)])
    assert objectives.complete(story, "o1") == 1
    assert objectives.complete(story, "o1") == 0
    assert story.objectives[0].status == "completed"


def test_complete_unknown_is_noop(make_story):
    story = make_story()
    assert objectives.complete(story, "nope") == 0


def test_can_add_uses_settings(make_story):
    story = make_story(objectives=[Objective(id="o1", description="Find the map")])
    assert objectives.can_add(story)
    assert not objectives.can_add(story, EngineSettings(max_active_objectives=1))
