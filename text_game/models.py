"""Core domain models.

The protocol, the controller and the save store all operate on these types.
Pydantic validates every document that crosses a boundary: model replies on
the way in, save files in both directions.

Models are lenient about the scalars a language model tends to emit
(`health: 100` instead of `"100"`, `people: null`) and strict about shape.
"""

from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

TurnStatus = Literal["PLAYING", "WON", "LOST"]
StatPolarity = Literal["good", "bad"]


# Before-validators, shared with the reply models in engine.replies.

def text_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return value


def text_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [text_value(v) for v in value]
    return value


def none_as_list(value: Any) -> Any:
    return [] if value is None else value


def status_value(value: Any) -> Any:
    if value is None:
        return "PLAYING"
    if isinstance(value, str):
        return value.strip().upper()
    return value


def text_map(value: Any) -> Any:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): text_value(v) for k, v in value.items()}
    return value


class World(BaseModel):
    """The descriptive contract produced by world generation.

    `win_conditions` and `lose_conditions` are shown to the model only, never
    to the player.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    short_name: str = ""
    description: str = ""
    possibilities: list[str] = Field(default_factory=list)
    state_schema: str = ""
    stat_display_names: dict[str, str] = Field(default_factory=dict)
    stat_polarities: dict[str, StatPolarity] = Field(default_factory=dict)
    win_conditions: str = ""
    lose_conditions: str = ""

    coerce_text = field_validator(
        "title", "short_name", "description", "state_schema",
        "win_conditions", "lose_conditions", mode="before",
    )(text_value)
    coerce_lists = field_validator("possibilities", mode="before")(text_list)
    coerce_maps = field_validator("stat_display_names", mode="before")(text_map)

    @field_validator("stat_polarities", mode="before")
    @classmethod
    def normalise_polarities(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            # Display-only; values outside good/bad are dropped.
            normalised = {str(k): str(v).strip().lower() for k, v in value.items()}
            return {k: v for k, v in normalised.items() if v in get_args(StatPolarity)}
        return value

    def display_name(self, key: str) -> str:
        return self.stat_display_names.get(key, key)


class GameState(BaseModel):
    """Mutable game state. Replaced wholesale after every turn."""

    inventory: list[str] = Field(default_factory=list)
    stats: dict[str, str] = Field(default_factory=dict)
    current_location: str = ""
    health: str = ""
    progress: str = ""

    coerce_text = field_validator(
        "current_location", "health", "progress", mode="before",
    )(text_value)
    coerce_lists = field_validator("inventory", mode="before")(text_list)
    coerce_maps = field_validator("stats", mode="before")(text_map)


class Location(BaseModel):
    """A discovered place, keyed by name in `GameSession.locations`."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    description: str = ""
    people: list[str] = Field(default_factory=list)
    objects: list[str] = Field(default_factory=list)

    coerce_text = field_validator("name", "description", mode="before")(text_value)
    coerce_lists = field_validator("people", "objects", mode="before")(text_list)


class HistoryEntry(BaseModel):
    """One resolved turn."""

    player_action: str
    outcome: str
    status: TurnStatus = "PLAYING"
    explanations: list[str] = Field(default_factory=list)
    changes: dict[str, str] = Field(default_factory=dict)
    inventory: list[str] = Field(default_factory=list)

    coerce_lists = field_validator("explanations", "inventory", mode="before")(text_list)
    coerce_maps = field_validator("changes", mode="before")(text_map)

    coerce_status = field_validator("status", mode="before")(status_value)


class GameHistory(BaseModel):
    """Running summary plus the turns not yet folded into it.

    A turn is either part of `summary` or present in `entries`, never both.
    """

    summary: str = ""
    entries: list[HistoryEntry] = Field(default_factory=list)

    coerce_text = field_validator("summary", mode="before")(text_value)
    coerce_lists = field_validator("entries", mode="before")(none_as_list)


class GameSession(BaseModel):
    """Aggregate root for one game."""

    world: World = Field(default_factory=World)
    state: GameState = Field(default_factory=GameState)
    history: GameHistory = Field(default_factory=GameHistory)
    locations: dict[str, Location] = Field(default_factory=dict)

    @property
    def last_entry(self) -> HistoryEntry | None:
        if not self.history.entries:
            return None
        return self.history.entries[-1]
