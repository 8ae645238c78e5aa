"""End-to-end scenario: a new game, an ordinary turn, a winning turn, a reload.

Drives the controller exactly as the terminal does, with a scripted model:
  1. hint "haunted lighthouse" → world generated, opening shown, auto-saved
  2. "listen at the door"      → PLAYING, state replaced, auto-save updated
  3. "light the lamp"          → WON, Lamp Room discovered, auto-save updated
  4. restart and /load         → the saved game comes back with its log
"""

import json
from unittest.mock import AsyncMock

from text_game.controller import Controller, InputSubmitted
from text_game.engine import parse_turn_reply
from text_game.storage import SAVE_VERSION, Storage

from conftest import PLAYING_REPLY, TURN_REPLY, WORLD_REPLY


async def test_haunted_lighthouse(storage: Storage):
    llm = AsyncMock(side_effect=[WORLD_REPLY, PLAYING_REPLY, TURN_REPLY])
    controller = Controller(llm=llm, storage=storage)

    controller.handle(InputSubmitted("haunted lighthouse"))
    await controller.settle()

    assert controller.state == "playing"
    stage, prompt = llm.call_args_list[0][0]
    assert stage == "world"
    assert "haunted lighthouse" in prompt
    assert storage.list_sessions() == ["haunted-lighthouse"]

    # An ordinary turn
    controller.handle(InputSubmitted("listen at the door"))
    await controller.settle()

    expected = parse_turn_reply(PLAYING_REPLY).state
    assert controller.session.state == expected
    assert controller.session.last_entry.status == "PLAYING"
    assert [e.text for e in controller.log[1:]] == [
        "listen at the door",
        "The wind howls. You steady your nerves against the cold.",
        "Effects: Courage: +1, Vitality: -5",
    ]

    version = storage.base_path / "haunted-lighthouse" / "version.json"
    assert json.loads(version.read_text()) == {"version": SAVE_VERSION}
    saved = storage.load("haunted-lighthouse")
    assert saved.state == expected
    assert [e.player_action for e in saved.history.entries] == ["listen at the door"]

    # The winning turn
    controller.handle(InputSubmitted("light the lamp"))
    await controller.settle()

    texts = [e.text for e in controller.log]
    assert texts[4] == "light the lamp"
    assert "The **lamp** flares to life." in texts[5]
    assert controller.log[-1].kind == "notice"

    saved = storage.load("haunted-lighthouse")
    assert saved.state.current_location == "Lamp Room"
    assert set(saved.locations) == {"Lighthouse Base", "Lamp Room"}
    assert saved.history.entries[-1].status == "WON"
    assert saved.world.win_conditions == "Light the lamp."

    # Reload
    controller.handle(InputSubmitted("/restart"))
    controller.handle(InputSubmitted("/load haunted"))
    await controller.settle()

    assert controller.state == "playing"
    assert [e.kind for e in controller.log] == [
        "game", "user", "game", "effect", "user", "game", "effect",
    ]
    assert controller.log[0].text.startswith("The Haunted Lighthouse\nLocation: Lamp Room")
    assert llm.call_count == 3
