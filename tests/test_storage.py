"""Tests for JSON file storage."""

from datetime import datetime, timedelta, timezone

import pytest

from choicecraft.errors import StoryNotFound, ValidationError
from choicecraft.models import Wallet
from choicecraft.storage import Storage

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage(tmp_path):
    return Storage(tmp_path)


def test_layout(storage, tmp_path):
    assert (tmp_path / "stories").is_dir()
    assert (tmp_path / "wallets").is_dir()


def test_story_roundtrip(storage, make_story):
    story = make_story()
    storage.save_story(story)
    assert storage.get_story("s1") == story


def test_missing_story(storage):
    with pytest.raises(StoryNotFound):
        storage.get_story("nope")


def test_unsafe_id_rejected(storage):
    with pytest.raises(ValidationError):
        storage.get_story("../etc/passwd")


def test_no_temp_file_left_behind(storage, make_story, tmp_path):
    storage.save_story(make_story())
    assert [p.name for p in (tmp_path / "stories").iterdir()] == ["s1.json"]


def test_list_most_recent_first(storage, make_story):
    for story_id in ["old", "new", "mid"]:
        story = make_story().model_copy(update={"id": story_id})
        story.last_played_at = T0 + timedelta(hours={"old": 0, "mid": 1, "new": 2}[story_id])
        storage.save_story(story)
    assert [s.id for s in storage.list_stories()] == ["new", "mid", "old"]


def test_find_by_invite_code(storage, make_story):
    story = make_story(("Aria",), is_coop=True, invite_code="K3Y9ZZ")
    storage.save_story(story)
    assert storage.find_by_invite_code("k3y9zz").id == "s1"
    assert storage.find_by_invite_code("AAAAAA") is None


def test_delete_story(storage, make_story):
    storage.save_story(make_story())
    assert storage.delete_story("s1")
    assert not storage.delete_story("s1")


def test_wallet_roundtrip(storage):
    assert storage.get_wallet("u1") is None
    wallet = Wallet(user_id="u1", tokens=4, last_token_regen=T0, last_bookmark_regen=T0)
    storage.save_wallet(wallet)
    assert storage.get_wallet("u1") == wallet
