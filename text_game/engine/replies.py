"""Parsing of model replies into validated documents.

Replies are YAML, sometimes wrapped in a markdown code fence. Nothing here
touches a session: a reply is either fully parsed or rejected.
"""

import re

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from text_game.models import (
    GameState,
    Location,
    TurnStatus,
    World,
    status_value,
    text_list,
    text_map,
    text_value,
)

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*[ \t]*\n(.*?)```", re.DOTALL)


class ReplyError(ValueError):
    """Base class for replies that cannot be used."""


class EmptyReply(ReplyError):
    """The model returned no usable content."""


class MalformedReply(ReplyError):
    """The reply did not parse into the expected shape.

    `raw` keeps the text as received, for diagnostics.
    """

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw

    def __str__(self) -> str:
        return f"{self.args[0]}\nOutput was: {self.raw}"


class WorldReply(BaseModel):
    world: World
    initial_location: Location | None = None
    state: GameState = Field(default_factory=GameState)

    @field_validator("state", mode="before")
    @classmethod
    def missing_state_is_empty(cls, value):
        return {} if value is None else value


class TurnReply(BaseModel):
    outcome: str
    status: TurnStatus = "PLAYING"
    discovered_location: Location | None = None
    explanations: list[str] = Field(default_factory=list)
    changes: dict[str, str] = Field(default_factory=dict)
    state: GameState

    coerce_text = field_validator("outcome", mode="before")(text_value)
    coerce_status = field_validator("status", mode="before")(status_value)
    coerce_lists = field_validator("explanations", mode="before")(text_list)
    coerce_maps = field_validator("changes", mode="before")(text_map)


def strip_fences(text: str) -> str:
    """Remove a markdown code fence around the document, if any."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        return "\n".join(lines)
    match = _FENCED_BLOCK.search(cleaned)
    if match:
        return match.group(1)
    return cleaned


def load_document(text: str) -> dict:
    """Strip fences and decode a YAML mapping.

    Raises EmptyReply for blank text and MalformedReply for anything that is
    not a mapping.
    """
    if not text or not text.strip():
        raise EmptyReply("no content returned from the model")
    cleaned = strip_fences(text)
    try:
        data = yaml.safe_load(cleaned)
    except yaml.YAMLError as e:
        raise MalformedReply(f"failed to parse YAML: {e}", raw=cleaned) from e
    if not isinstance(data, dict):
        raise MalformedReply(
            f"expected a YAML mapping, got {type(data).__name__}", raw=cleaned,
        )
    return data


def parse_world_reply(text: str) -> WorldReply:
    data = load_document(text)
    try:
        return WorldReply.model_validate(data)
    except ValidationError as e:
        raise MalformedReply(f"world reply has the wrong shape: {e}", raw=text) from e


def parse_turn_reply(text: str) -> TurnReply:
    data = load_document(text)
    try:
        return TurnReply.model_validate(data)
    except ValidationError as e:
        raise MalformedReply(f"turn reply has the wrong shape: {e}", raw=text) from e
