"""Tests for Handlebars prompt rendering and the game's templates."""

import pytest

from text_game.engine import build_turn_prompt
from text_game.prompts import (
    GENERATE_WORLD_PROMPT,
    PLAYER_THEME_PROMPT,
    SUMMARIZE_HISTORY_PROMPT,
    PromptError,
    render_prompt,
)

from conftest import make_session


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "World"}) == "Hello World!"


def test_triple_stash_is_not_escaped():
    assert render_prompt('{{{x}}}', {"x": 'say "hi" & go'}) == 'say "hi" & go'


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── templates ────────────────────────────────────────────────


def test_world_prompt_with_hint():
    text = render_prompt(GENERATE_WORLD_PROMPT, {"hint": "haunted lighthouse", "random": False})
    assert "Theme hint from the player: haunted lighthouse" in text
    assert "Surprise the player" not in text


def test_world_prompt_random():
    text = render_prompt(GENERATE_WORLD_PROMPT, {"hint": "random", "random": True})
    assert "Surprise the player" in text
    assert "Theme hint from the player" not in text


def test_turn_prompt_sections():
    session = make_session(entries=1)
    text = build_turn_prompt(session, "climb the stairs")
    assert "Win: Light the lamp." in text
    assert "Lose: Vitality reaches 0." in text
    assert "- Lighthouse Base: A damp stone room. (People: Old Keeper; Objects: spiral stair)" in text
    assert "Location: Lighthouse Base" in text
    assert "Inventory: matches" in text
    assert "- courage: 5\n- fear: 2" in text
    assert "Action: action 1" in text
    assert "## Player action\nclimb the stairs" in text


def test_turn_prompt_fresh_game():
    session = make_session()
    session.locations = {}
    text = build_turn_prompt(session, "look")
    assert "(none yet)" in text
    assert "(the adventure has just begun)" in text


def test_summary_prompt():
    text = render_prompt(SUMMARIZE_HISTORY_PROMPT, {"current_summary": "", "new_events": "Action: a"})
    assert "(nothing yet)" in text
    assert "Action: a" in text


def test_player_theme_prompt_is_static():
    assert "theme" in render_prompt(PLAYER_THEME_PROMPT, {})
