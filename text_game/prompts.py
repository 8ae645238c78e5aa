"""Handlebars prompt templates for every model call.

Values are inserted with triple-stash (`{{{x}}}`) so quotes and ampersands in
world text reach the model unescaped. Anything that needs ordering or
formatting is prepared in Python by the engine and passed in as a string.
"""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_compiled: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a prompt template fails to compile or render."""


def render_prompt(template: str, context: dict[str, Any]) -> str:
    """Render one of the prompt templates below, compiling it on first use."""
    try:
        compiled = _compiled.get(template)
        if compiled is None:
            compiled = _compiled[template] = _compiler.compile(template)
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"failed to render prompt: {e}") from e


GENERATE_WORLD_PROMPT = """\
You are the game master of a single-player text adventure. Invent a world \
for the player to explore.

{{#if random}}
Theme: choose any theme you like. Surprise the player.
{{else}}
Theme hint from the player: {{{hint}}}
Honor the hint closely.
{{/if}}

Return ONLY a YAML document with exactly this shape:

world:
  title: <short evocative title>
  short_name: <lowercase-hyphenated identifier for the title>
  description: |
    <opening narration shown to the player: the setting, who they are, and
    what they see right now>
  possibilities:
    - <a kind of action the player can take>
  state_schema: |
    <what each stat means and how it changes>
  stat_display_names:
    health: <display name for health>
    progress: <display name for progress>
    <stat key>: <display name>
  stat_polarities:
    health: good
    <stat key>: <good if higher is better, bad if lower is better>
  win_conditions: |
    <what the player must achieve to win>
  lose_conditions: |
    <what makes the player lose>
initial_location:
  name: <location name>
  description: |
    <what the location looks like>
  people:
    - <person present>
  objects:
    - <object present>
state:
  inventory:
    - <item the player starts with>
  stats:
    <stat key>: "<value>"
  current_location: <must equal initial_location.name>
  health: "<value, e.g. 100>"
  progress: "<value, e.g. 0%>"

Rules:
- Use the YAML literal block style (|) for every multi-line text.
- Mark important people, places and objects in prose with markdown bold, \
like **the brass key**.
- Put spoken dialogue in double quotes.
- Quote every stat value.
- The win and lose conditions are secret: never hint at them in the description.
"""


PROCESS_TURN_PROMPT = """\
You are the game master of a single-player text adventure. Resolve the \
player's action and report the new game state.

## World
{{{world_description}}}

## Secret conditions (never reveal these to the player)
Win: {{{win_conditions}}}
Lose: {{{lose_conditions}}}

## Known locations
{{#if known_locations}}
{{{known_locations}}}
{{else}}
(none yet)
{{/if}}

## Current state
Location: {{{current_location}}}
Inventory: {{{inventory}}}
Stats:
{{{stats}}}
Health: {{{health}}}
Progress: {{{progress}}}

## History
{{#if history}}
{{{history}}}
{{else}}
(the adventure has just begun)
{{/if}}

## Player action
{{{action}}}

Return ONLY a YAML document with exactly this shape:

outcome: |
  <second-person narration of what happens>
status: <PLAYING, WON or LOST>
discovered_location:
  name: <name, only if the player reaches or learns of a new place; omit otherwise>
  description: |
    <what it looks like>
  people: []
  objects: []
explanations:
  - <one short sentence per state change, explaining why it happened>
changes:
  <stat key or inventory>: <short description of the change, e.g. "-10" or "+ rusty key">
state:
  inventory: []
  stats: {}
  current_location: <location name>
  health: "<value>"
  progress: "<value>"

Rules:
- `state` is the COMPLETE new state, not a diff. Copy unchanged values.
- If the player moves somewhere new, describe it in discovered_location and \
set current_location to its name.
- Decide WON or LOST only when the secret conditions are met.
- Never quote or paraphrase the secret conditions in the outcome.
- Use the YAML literal block style (|) for multi-line text, markdown bold for \
important nouns and double quotes for dialogue.
"""


SUMMARIZE_HISTORY_PROMPT = """\
You keep the chronicle of a text adventure. Fold the new events into the \
summary so far.

## Summary so far
{{#if current_summary}}
{{{current_summary}}}
{{else}}
(nothing yet)
{{/if}}

## New events
{{{new_events}}}

Write one updated summary in plain prose, at most two paragraphs. Keep \
names, items, places and promises that may matter later. Return only the \
summary text.
"""


PLAYER_THEME_PROMPT = """\
You are a player about to start a text-based adventure game. Provide a \
short, creative hint for a game theme (e.g. 'steampunk underwater city', \
'noir detective in a world of cats'). Return ONLY the theme string.
"""


PLAYER_ACTION_PROMPT = """\
You are playing a text-based adventure game.
World: {{{world_description}}}
Current Location: {{{current_location}}}
Inventory: {{{inventory}}}
Stats:
{{{stats}}}

History:
{{{history}}}

What is your next action? Be creative but stay within the world's logic. \
Return ONLY the action string, no extra commentary.
"""
