"""Tests for the relationship graph."""

from choicecraft import relationships
from choicecraft.models import RelationshipChange, StoryHistoryEntry


def test_new_characters_start_neutral(make_story):
    story = make_story(("Aria",), ("Borin", "Cade"))
    assert relationships.value(story, "aria", "borin") == 0
    assert relationships.value(story, "cade", "aria") == 0
    assert "aria" not in story.character("aria").relationships


def test_adjust_clamps_to_range(make_story):
    story = make_story()
    relationships.adjust(story, "aria", "borin", 95)
    assert relationships.adjust(story, "aria", "borin", 10) == 100
    assert relationships.adjust(story, "aria", "borin", -250) == -100


def test_directions_are_independent(make_story):
    story = make_story()
    relationships.adjust(story, "aria", "borin", 30)
    assert relationships.value(story, "aria", "borin") == 30
    assert relationships.value(story, "borin", "aria") == 0


def test_adjust_pair_moves_both(make_story):
    story = make_story()
    assert relationships.adjust_pair(story, "aria", "borin", -15)
    assert relationships.value(story, "aria", "borin") == -15
    assert relationships.value(story, "borin", "aria") == -15


def test_unknown_or_self_target_skipped(make_story):
    story = make_story()
    assert relationships.adjust(story, "aria", "ghost", 10) is None
    assert relationships.adjust(story, "aria", "aria", 10) is None
    assert not relationships.adjust_pair(story, "ghost", "aria", 10)
    assert "aria" not in story.character("aria").relationships


def test_history_newest_first(make_story):
    story = make_story(("Aria",), ("Borin", "Cade"))
    for i, target in enumerate(["borin", "cade", "borin"]):
        story.story_history.append(StoryHistoryEntry(
            character_id="aria",
            character_name="Aria",
            choice=f"choice {i}",
            outcome="...",
            relationship_changes=[RelationshipChange(character_id=target, change=5)],
        ))
    found = relationships.history(story, "borin", "aria")
    assert [e.choice for e in found] == ["choice 2", "choice 0"]


def test_milestone_fires_once(make_story):
    before = make_story()
    after = before.model_copy(deep=True)
    relationships.adjust_pair(after, "aria", "borin", 80)
    assert relationships.new_milestones(before, after, 80) == [("aria", "borin")]

    after.relationship_milestones.append(("aria", "borin"))
    later = after.model_copy(deep=True)
    relationships.adjust_pair(later, "aria", "borin", -100)
    relationships.adjust_pair(later, "aria", "borin", -100)
    assert relationships.new_milestones(after, later, 80) == []


def test_negative_milestone(make_story):
    before = make_story()
    after = before.model_copy(deep=True)
    relationships.adjust(after, "borin", "aria", -85)
    assert relationships.new_milestones(before, after, 80) == [("aria", "borin")]
