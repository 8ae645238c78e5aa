"""Runtime configuration, read from the environment.

    GEMINI_API_KEY        required for play and simulate
    TEXT_GAME_SAVE_DIR    save directory (default: $XDG_CONFIG_HOME/text-game/saves)
    TEXT_GAME_MODEL       model name (default: gemini-2.5-flash)
    TEXT_GAME_LOG_LEVEL   logging level name (default: WARNING)
    TEXT_GAME_LOG_FILE    log file (default: text-game.log next to the save directory)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from text_game.llm import DEFAULT_MODEL


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


def default_save_dir(environ: Mapping[str, str]) -> Path:
    base = environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "text-game" / "saves"


@dataclass(frozen=True)
class Config:
    api_key: str
    save_dir: Path
    model: str = DEFAULT_MODEL
    log_level: str = "WARNING"
    log_file: Path | None = None

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        save_dir: Path | None = None,
        require_api_key: bool = True,
    ) -> Config:
        """Build a Config. An explicit `save_dir` wins over TEXT_GAME_SAVE_DIR."""
        env = os.environ if environ is None else environ

        api_key = env.get("GEMINI_API_KEY", "").strip()
        if require_api_key and not api_key:
            raise ConfigError(
                "GEMINI_API_KEY is not set. Get a key from Google AI Studio and "
                "export it (or put GEMINI_API_KEY=... in a .env file)."
            )

        if save_dir is None:
            configured = env.get("TEXT_GAME_SAVE_DIR", "").strip()
            save_dir = Path(configured).expanduser() if configured else default_save_dir(env)

        level = env.get("TEXT_GAME_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"TEXT_GAME_LOG_LEVEL must be a logging level name, got {level!r}")

        log_file = env.get("TEXT_GAME_LOG_FILE", "").strip()

        return cls(
            api_key=api_key,
            save_dir=save_dir,
            model=env.get("TEXT_GAME_MODEL", "").strip() or DEFAULT_MODEL,
            log_level=level,
            log_file=Path(log_file).expanduser() if log_file else save_dir.parent / "text-game.log",
        )
