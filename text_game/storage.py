"""JSON file storage for saved games.

Each named save is a directory under a base path chosen by the caller.
There is no database — reads and writes go through pydantic's JSON
serialisation of the session models.

Directory layout:

    {base}/
      {name}/
        version.json          ← {"version": "1"}; written last, marks a complete save
        world.json            ← World
        state.json            ← GameState
        history.json          ← GameHistory
        locations/
          {filename}.json     ← one Location per file, see location_filename();
                                 a repeated stem gets -2, -3, ...

Saving removes the old marker first, so an interrupted overwrite is not
loadable. Loading refuses a save whose version marker is missing or
different from SAVE_VERSION. There is no migration path.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import unicodedata
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from text_game.models import GameHistory, GameSession, GameState, Location, World

logger = logging.getLogger(__name__)

SAVE_VERSION = "1"

M = TypeVar("M", bound=BaseModel)

VERSION_FILE = "version.json"
WORLD_FILE = "world.json"
STATE_FILE = "state.json"
HISTORY_FILE = "history.json"
LOCATIONS_DIR = "locations"


class PersistenceError(Exception):
    """Raised when a save cannot be written or read back."""


class IncompatibleSaveError(PersistenceError):
    """Raised when a save's version marker is missing or unsupported."""


def slugify(title: str) -> str:
    """Directory-safe form of a world title or short name.

    "The Haunted Lighthouse" → "the-haunted-lighthouse"
    """
    text = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    words = re.findall(r"[a-z0-9]+", re.sub(r"['\"]", "", text.lower()))
    return "-".join(words) or "untitled"


def location_filename(name: str) -> str:
    """File stem for a location: "Old Mill / Loft" → "old-mill---loft"."""
    safe = name.lower().replace(" ", "-").replace("/", "-").replace("\\", "-")
    return safe or "unnamed"


def unique_stem(stem: str, taken: set[str]) -> str:
    """`stem`, or `stem-2`, `stem-3`, ... if it is already in `taken`."""
    candidate = stem
    n = 2
    while candidate in taken:
        candidate = f"{stem}-{n}"
        n += 1
    return candidate


class _VersionInfo(BaseModel):
    version: str


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _save_dir(self, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise PersistenceError(f"invalid save name: {name!r}")
        return self._base / name

    def _write_model(self, path: Path, model: BaseModel) -> None:
        path.write_text(model.model_dump_json(indent=2))

    def _read_model(self, path: Path, model_type: type[M]) -> M:
        try:
            return model_type.model_validate_json(path.read_text())
        except OSError as e:
            raise PersistenceError(f"could not read {path.name}: {e}") from e
        except ValidationError as e:
            raise PersistenceError(f"{path.name} is corrupt: {e}") from e

    # ------------------------------------------------------------------
    # Saves
    # ------------------------------------------------------------------

    def save(self, session: GameSession, name: str) -> Path:
        """Write the session under `name`, replacing any previous save."""
        directory = self._save_dir(name)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            # Unloadable until the new marker is written.
            (directory / VERSION_FILE).unlink(missing_ok=True)
            self._write_model(directory / WORLD_FILE, session.world)
            self._write_model(directory / STATE_FILE, session.state)
            self._write_model(directory / HISTORY_FILE, session.history)

            loc_dir = directory / LOCATIONS_DIR
            if loc_dir.exists():
                shutil.rmtree(loc_dir)
            if session.locations:
                loc_dir.mkdir()
                stems: set[str] = set()
                for loc_name in sorted(session.locations):
                    stem = unique_stem(location_filename(loc_name), stems)
                    stems.add(stem)
                    self._write_model(loc_dir / f"{stem}.json", session.locations[loc_name])

            self._write_model(directory / VERSION_FILE, _VersionInfo(version=SAVE_VERSION))
        except OSError as e:
            raise PersistenceError(f"failed to save {name!r}: {e}") from e

        logger.debug("saved session name=%s dir=%s", name, directory)
        return directory

    def load(self, name: str) -> GameSession:
        directory = self._save_dir(name)
        if not directory.is_dir():
            raise PersistenceError(f"no save named {name!r}")

        version_path = directory / VERSION_FILE
        if not version_path.is_file():
            raise IncompatibleSaveError(
                "no version marker (save is incomplete or too old)"
            )
        try:
            info = _VersionInfo.model_validate_json(version_path.read_text())
        except (OSError, ValidationError) as e:
            raise IncompatibleSaveError(f"unreadable version info: {e}") from e
        if info.version != SAVE_VERSION:
            raise IncompatibleSaveError(
                f"incompatible save version: found {info.version}, want {SAVE_VERSION}"
            )

        world = self._read_model(directory / WORLD_FILE, World)
        state = self._read_model(directory / STATE_FILE, GameState)
        history = self._read_model(directory / HISTORY_FILE, GameHistory)

        locations: dict[str, Location] = {}
        loc_dir = directory / LOCATIONS_DIR
        if loc_dir.is_dir():
            for path in sorted(loc_dir.glob("*.json")):
                loc = self._read_model(path, Location)
                locations[loc.name] = loc

        logger.debug("loaded session name=%s locations=%d", name, len(locations))
        return GameSession(
            world=world, state=state, history=history, locations=locations,
        )

    def list_sessions(self) -> list[str]:
        """Names of saves that carry a readable version marker, sorted."""
        if not self._base.is_dir():
            return []
        names = []
        for entry in sorted(self._base.iterdir()):
            version_path = entry / VERSION_FILE
            if not entry.is_dir() or not version_path.is_file():
                continue
            try:
                data = json.loads(version_path.read_text())
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(data, dict) and "version" in data:
                names.append(entry.name)
        return names
