"""Shared fixtures: scripted narration, a fixed clock and story builders."""

import json
import random
from datetime import datetime, timedelta, timezone

import pytest

from choicecraft import relationships
from choicecraft.controller import TurnController
from choicecraft.ledger import new_character
from choicecraft.models import Player, Story
from choicecraft.narration import Narrator
from choicecraft.storage import Storage

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class LLMSequence:
    """Return canned replies in order and record every call.

    A reply may be a string, a dict (sent as JSON) or an exception instance
    (raised). Once the script runs out every call returns "".
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []  # list of (stage, prompt) tuples
        self._index = 0

    async def __call__(self, stage, prompt):
        self.calls.append((stage, prompt))
        idx = self._index
        self._index += 1
        if idx >= len(self.responses):
            return ""
        reply = self.responses[idx]
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply

    @property
    def call_count(self):
        return len(self.calls)

    @property
    def stages(self):
        return [stage for stage, _ in self.calls]

    def prompt(self, index):
        return self.calls[index][1]


class Clock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def llm_sequence():
    return LLMSequence


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def make_story():
    """Build a story with the named characters (ids are lowercased names).

    Playable characters are listed first; in co-op each playable one is
    claimed by user "u-<id>" in order.
    """

    def build(playable=("Aria",), npcs=("Borin",), *, is_coop=False, status="playing", **fields):
        story = Story(id="s1", title="The Sunken Keep", status=status, is_coop=is_coop, **fields)
        for name in playable:
            story.characters.append(new_character(name, is_playable=True, character_id=name.lower()))
        for name in npcs:
            story.characters.append(new_character(name, character_id=name.lower()))
        for char in story.characters:
            relationships.link_new_character(story, char.id)
        if is_coop:
            story.players = [Player(user_id=f"u-{name.lower()}", character_id=name.lower()) for name in playable]
            story.turn_character_id = playable[0].lower() if playable else None
        elif playable:
            story.active_character_id = playable[0].lower()
        return story

    return build


@pytest.fixture
def make_controller(tmp_path, clock):
    """TurnController over tmp_path with a fixed clock and seeded rng."""

    def build(llm, **kwargs):
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("rng", random.Random(7))
        narrator = Narrator(llm, timeout=kwargs.pop("timeout", 5.0))
        return TurnController(Storage(tmp_path), narrator, **kwargs)

    return build


def turn_reply(text="The lantern gutters as you step inside.", **fields):
    """A minimal valid turn proposal."""
    return {"narrative_text": text, **fields}


@pytest.fixture
def reply():
    return turn_reply
