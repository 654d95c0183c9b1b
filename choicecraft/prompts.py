"""Handlebars prompt templates for the narration requests.

Four stages, each with a default template that config.json may override:

  turn             narrate one player action and propose its consequences
  chapter_summary  summarise the chapter that just closed
  negotiation      the haggling NPC's reply to a lowball offer
  dice_bluff       the Liar's Dice opponent's next move

Templates are rendered with pybars; compiled templates are cached by source
string. The context builders below flatten the story into the short paths
the templates use (story.*, char.*, game.*).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from choicecraft.models import Character, DiceBluffGame, NegotiationGame, Story
from choicecraft.objectives import active as active_objectives

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


DEFAULT_TURN_PROMPT = """\
You are the narrator of a {{story.genre}} story called "{{story.title}}".

## Plot
{{story.plot}}

## Where Things Stand
Chapter {{story.chapter}}, {{story.time_of_day}}, at {{story.location_name}}.
{{story.story_progression}}

## Acting Character
{{char.name}} (level {{char.level}}): {{char.traits}}
{{char.backstory}}
Health {{char.health}}, happiness {{char.happiness}}, money {{char.money}}.
Stats: intellect {{char.stats.intellect}}, charisma {{char.stats.charisma}}, \
wits {{char.stats.wits}}, willpower {{char.stats.willpower}}.
{{#if items}}Carrying: {{items}}.
{{/if}}
{{#if skills}}Skills: {{skills}}.
{{/if}}

## Other Characters
{{#each others}}
- {{name}} (id {{id}}{{#if is_playable}}, playable{{/if}}): {{traits}}. \
Feels {{opinion}}.
{{/each}}

## Known Places
{{#each scenes}}
- {{name}}
{{/each}}

{{#if objectives}}
## Open Objectives
{{#each objectives}}
- [{{id}}] {{description}}
{{/each}}

{{/if}}
## Recent History
{{#last history 10}}
> {{character_name}}: {{{choice}}}
{{{outcome}}}

{{/last}}
## Action
{{char.name}}: "{{{choice}}}"

Narrate what happens next in a few vivid sentences that end with a question \
for the player. Let the character's stats, skills and items decide how well \
the action goes. Then output a JSON object:

```json
{
  "narrative_text": "What happens next...",
  "story_progression": "One-sentence summary of the story so far.",
  "location_name": "Where the scene now takes place",
  "time_of_day": "Morning | Afternoon | Evening | Night",
  "interacting_npc_name": "NPC the character is dealing with, or null",
  "next_actor": "Name of the character who should act next, or null",
  "stat_deltas": {
    "health": 0, "money": 0, "happiness": 0, "xp": 10,
    "items_gained": [],
    "items_lost": [],
    "skill_gained": null
  },
  "relationship_deltas": [
    {"character_id": "id", "change": 5}
  ],
  "completed_objective_id": null,
  "story_ended": false
}
```

Keep changes small: health and happiness rarely move more than 20, \
relationships rarely more than 10.
{{#if objective_due}}
The story is ready for a new objective. Add
"new_objective": {"description": "...", "token_reward": 1 } to the object.
{{/if}}
You may add "new_scene": {"name": "...", "prompt": "..." } when the characters \
reach a place not listed above. Set "story_ended" to true only when the \
story has reached its conclusion. Output valid JSON only.\
"""

DEFAULT_CHAPTER_SUMMARY_PROMPT = """\
You are the narrator of "{{story.title}}". Chapter {{story.chapter}} has just ended.

## The Chapter
{{#last history 10}}
> {{character_name}}: {{{choice}}}
{{{outcome}}}

{{/last}}
Write a short, evocative summary of this chapter (three or four sentences) \
that reminds the reader what happened and hints at what is to come. Output \
a JSON object:

```json
{
  "summary": "..."
}
```

Output valid JSON only.\
"""

DEFAULT_NEGOTIATION_PROMPT = """\
You are {{game.npc_name}}, selling {{game.item.name}} ({{game.item.description}}).
You privately want at least {{game.target_price}} coins. Your patience is \
{{game.patience}} out of 100.
{{#if game.last_counter_offer}}Your last counter-offer was {{game.last_counter_offer}}.
{{/if}}

{{char.name}} offers {{offer}} coins.

The offer is too low. Answer in character. Decide how much this lowball \
wears on your patience (0-40) and name a counter-offer that is higher than \
the offer and never higher than your previous counter-offer. Output a JSON \
object:

```json
{
  "dialogue": "...",
  "patience_damage": 15,
  "counter_offer": 40
}
```

Output valid JSON only.\
"""

DEFAULT_DICE_BLUFF_PROMPT = """\
You are {{game.npc_name}}, playing Liar's Dice against {{char_name}}.

Rules: ones are wild and count as any face. A new bid must raise the \
quantity, or keep the quantity and raise the face value. Instead of bidding \
you may challenge the current bid.

Your dice (secret): {{npc_dice}}
Dice on the table: {{total_dice}}
Current bid: {{#if game.current_bid}}{{game.current_bid.quantity}} x \
{{game.current_bid.value}}'s{{else}}none{{/if}}

Count your own dice that match the bid (plus your ones), guess how many the \
other player holds, then either raise or challenge. Add a short line of \
in-character dialogue. Output a JSON object:

```json
{
  "action": "bid",
  "bid": {"quantity": 3, "value": 4 },
  "dialogue": "..."
}
```

Use "action": "challenge" with "bid": null to call the bluff. Output valid \
JSON only.\
"""

DEFAULT_PROMPTS: dict[str, str] = {
    "turn": DEFAULT_TURN_PROMPT,
    "chapter_summary": DEFAULT_CHAPTER_SUMMARY_PROMPT,
    "negotiation": DEFAULT_NEGOTIATION_PROMPT,
    "dice_bluff": DEFAULT_DICE_BLUFF_PROMPT,
}


# ── Custom Handlebars helpers ────────────────────────────


def _helper_take(this, options, items, count):
    """{{#take array N}}...{{/take}} — iterate over the first N items."""
    result = []
    for item in list(items)[:int(count)]:
        result.extend(options["fn"](item))
    return result


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}} — iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "take": _helper_take,
    "last": _helper_last,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ---------------------------------------------------------------------------
# Context builders
# ---------------------------------------------------------------------------

def _opinion(value: int) -> str:
    if value >= 60:
        return "devoted"
    if value >= 20:
        return "warm"
    if value > -20:
        return "neutral"
    if value > -60:
        return "wary"
    return "hostile"


def _story_ctx(story: Story) -> dict[str, Any]:
    return story.model_dump(
        mode="json",
        include={
            "title", "plot", "genre", "chapter", "time_of_day",
            "location_name", "story_progression",
        },
    )


def _history_ctx(story: Story) -> list[dict[str, Any]]:
    return [entry.model_dump(mode="json") for entry in story.story_history]


def build_turn_context(
    story: Story, character: Character, choice: str, objective_due: bool = False
) -> dict[str, Any]:
    others = []
    for other in story.characters:
        if other.id == character.id or not other.active:
            continue
        others.append({
            "id": other.id,
            "name": other.name,
            "traits": other.traits,
            "is_playable": other.is_playable,
            "opinion": f"{_opinion(other.relationships.get(character.id, 0))} towards {character.name}",
        })
    return {
        "story": _story_ctx(story),
        "char": character.model_dump(mode="json", exclude={"relationships"}),
        "others": others,
        "scenes": [{"id": s.id, "name": s.name} for s in story.scenes],
        "objectives": [o.model_dump(mode="json") for o in active_objectives(story)],
        "history": _history_ctx(story),
        "items": ", ".join(item.name for item in character.items),
        "skills": ", ".join(character.skills),
        "choice": choice,
        "objective_due": objective_due,
    }


def build_chapter_context(story: Story) -> dict[str, Any]:
    return {"story": _story_ctx(story), "history": _history_ctx(story)}


def build_negotiation_context(game: NegotiationGame, offer: int, character: Character) -> dict[str, Any]:
    return {
        "game": game.model_dump(mode="json"),
        "char": {"name": character.name},
        "offer": offer,
    }


def build_dice_context(game: DiceBluffGame, char_name: str = "the player") -> dict[str, Any]:
    # The opponent sees its own dice and the player's count, never the player's faces.
    data = game.model_dump(mode="json", exclude={"player_dice"})
    return {
        "game": data,
        "char_name": char_name,
        "npc_dice": ", ".join(str(d) for d in game.npc_dice),
        "total_dice": len(game.player_dice) + len(game.npc_dice),
    }
