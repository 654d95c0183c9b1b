"""Create demo stories for development/testing."""

import shutil

from choicecraft import relationships
from choicecraft.ledger import new_character
from choicecraft.models import CharacterStats, Item, Objective, Scene, Story
from choicecraft.storage import Storage

from backend import config


def _dragons_hollow() -> Story:
    story = Story(
        id="dragons-hollow",
        title="Dragon's Hollow",
        plot="Deep in the mountain pass lies a village terrorized by a young dragon. "
        "The townsfolk need a hero, but things are not as simple as they seem.",
        location_name="The Charred Square",
        story_progression="The party arrives at dusk; half the village lies in ruins.",
    )
    gareth = new_character(
        "Gareth",
        is_playable=True,
        character_id="gareth",
        traits="Gruff, loyal to the King",
        stats=CharacterStats(intellect=4, charisma=5, wits=6, willpower=8),
    )
    gareth.items.append(Item(name="Rusty Sword", description="Nicked, but still sharp"))
    elena = new_character(
        "Elena",
        is_playable=True,
        character_id="elena",
        traits="Healer, curious about the dragon",
        stats=CharacterStats(intellect=7, charisma=6, wits=5, willpower=5),
    )
    elena.skills.append("First Aid")
    thrak = new_character("Thrak", character_id="thrak", traits="Hungry, suspicious of strangers")

    for char in (gareth, elena, thrak):
        story.characters.append(char)
        relationships.link_new_character(story, char.id)
    relationships.adjust_pair(story, "gareth", "elena", 60)
    relationships.adjust(story, "thrak", "gareth", -20)

    story.scenes = [
        Scene(id="charred-square", name="The Charred Square"),
        Scene(id="mountain-pass", name="Mountain Pass"),
    ]
    story.objectives.append(Objective(id="find-the-lair", description="Find the dragon's lair"))
    story.active_character_id = "gareth"
    story.status = "playing"
    return story


def _lost_caravan() -> Story:
    story = Story(
        id="lost-caravan",
        title="The Lost Caravan",
        plot="A merchant caravan vanished on the road between two cities. "
        "Find the survivors and recover the cargo.",
        is_coop=True,
        invite_code="CARAVN",
        location_name="Crossroads Inn",
    )
    for name in ("Mira", "Oskar"):
        char = new_character(name, is_playable=True, character_id=name.lower())
        story.characters.append(char)
        relationships.link_new_character(story, char.id)
    story.scenes = [Scene(id="crossroads-inn", name="Crossroads Inn")]
    return story


def create_demo_data() -> None:
    """Wipe existing stories and wallets and create fresh demo data."""
    base = config.data_dir()
    for sub in ("stories", "wallets"):
        if (base / sub).exists():
            shutil.rmtree(base / sub)

    storage = Storage(base)
    storage.save_story(_dragons_hollow())
    storage.save_story(_lost_caravan())
