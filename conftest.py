from unittest.mock import AsyncMock

import pytest

from text_game.models import (
    GameHistory,
    GameSession,
    GameState,
    HistoryEntry,
    Location,
    World,
)
from text_game.storage import Storage

# ---------------------------------------------------------------------------
# Canned model replies
# ---------------------------------------------------------------------------

WORLD_REPLY = """\
world:
  title: The Haunted Lighthouse
  short_name: Haunted Lighthouse
  description: |
    You stand at the foot of a **lighthouse**. "Who goes there?" calls a voice.
  possibilities:
    - climb the stairs
  state_schema: |
    courage rises when you face the dark.
  stat_display_names:
    health: Vitality
    progress: Exploration
    courage: Courage
  stat_polarities:
    courage: Good
  win_conditions: Light the lamp.
  lose_conditions: Vitality reaches 0.
initial_location:
  name: Lighthouse Base
  description: A damp stone room.
  people:
    - Old Keeper
  objects: null
state:
  inventory:
    - matches
  stats:
    courage: 5
  health: 100
  progress: 0%
"""

TURN_REPLY = """\
```yaml
outcome: |
  You climb the stairs and strike a match. The **lamp** flares to life.
status: won
discovered_location:
  name: Lamp Room
  description: The top of the tower.
  people: []
  objects:
    - great lamp
explanations:
  - The lamp is lit.
changes:
  progress: "+100%"
  inventory: "- matches"
state:
  inventory: []
  stats:
    courage: 7
  current_location: Lamp Room
  health: 100
  progress: 100%
```
"""

PLAYING_REPLY = """\
outcome: |
  The wind howls. You steady your nerves against the cold.
status: PLAYING
changes:
  courage: "+1"
  health: "-5"
state:
  inventory:
    - matches
  stats:
    courage: 6
  current_location: Lighthouse Base
  health: "95"
  progress: 0%
"""


def make_session(entries: int = 0) -> GameSession:
    """A small lighthouse session with `entries` resolved turns."""
    world = World(
        title="The Haunted Lighthouse",
        short_name="the-haunted-lighthouse",
        description='You stand at the foot of a **lighthouse**.',
        stat_display_names={"health": "Vitality", "progress": "Exploration", "fear": "Dread"},
        stat_polarities={"courage": "good", "fear": "bad"},
        win_conditions="Light the lamp.",
        lose_conditions="Vitality reaches 0.",
    )
    state = GameState(
        inventory=["matches"],
        stats={"courage": "5", "fear": "2"},
        current_location="Lighthouse Base",
        health="100",
        progress="0%",
    )
    history = GameHistory(entries=[
        HistoryEntry(
            player_action=f"action {i}",
            outcome=f"outcome {i}",
            changes={"fear": "+1"} if i % 2 else {},
            inventory=["matches"],
        )
        for i in range(1, entries + 1)
    ])
    locations = {
        "Lighthouse Base": Location(
            name="Lighthouse Base",
            description="A damp stone room.",
            people=["Old Keeper"],
            objects=["spiral stair"],
        ),
    }
    return GameSession(world=world, state=state, history=history, locations=locations)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def storage(tmp_path) -> Storage:
    return Storage(tmp_path / "saves")


@pytest.fixture
def session() -> GameSession:
    return make_session()


@pytest.fixture
def llm() -> AsyncMock:
    """Model stub; set `side_effect` to a list of replies in each test."""
    return AsyncMock(return_value="")
