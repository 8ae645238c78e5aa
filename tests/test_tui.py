"""Tests for the terminal front-end's rendering of controller changes."""

import io

from text_game.controller import Controller, InputSubmitted
from text_game.tui import PROMPTS, Terminal

from conftest import make_session


async def test_refresh_prints_new_entries_once(storage, llm):
    storage.save(make_session(entries=1), "lighthouse")
    controller = Controller(llm=llm, storage=storage)
    out = io.StringIO()
    terminal = Terminal(controller, out)

    terminal.refresh(controller)
    assert "Saved games: lighthouse" in out.getvalue()
    assert terminal.prompt() == PROMPTS["hint_entry"]

    controller.handle(InputSubmitted("/load lighthouse"))
    await controller.settle()
    terminal.refresh(controller)
    first = out.getvalue()
    assert "Location: Lighthouse Base" in first
    assert "> action 1" in first
    assert "Effects: Dread: +1" in first
    assert "INVENTORY" in first

    terminal.refresh(controller)
    assert out.getvalue() == first
    assert terminal.prompt() == "> "


async def test_refresh_shows_input_error(storage, llm):
    controller = Controller(llm=llm, storage=storage)
    out = io.StringIO()
    terminal = Terminal(controller, out)
    controller.handle(InputSubmitted("/nope"))
    terminal.refresh(controller)
    assert "! unrecognized command: /nope" in out.getvalue()
