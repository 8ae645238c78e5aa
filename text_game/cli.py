"""text-game — command line entry point.

    text-game [play]                      interactive game (default)
    text-game simulate [--turns N] [--hint TEXT]
    text-game saves                       list saved games
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from text_game.config import Config, ConfigError
from text_game.controller import Controller
from text_game.engine import ReplyError
from text_game.llm import GeminiLLM, TransportError
from text_game.prompts import PromptError
from text_game.simulate import DEFAULT_TURNS, simulate
from text_game.storage import Storage
from text_game.tui import run_terminal

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="text-game", description="LLM-narrated text adventure")
    parser.add_argument("--save-dir", type=Path, default=None,
                        help="Save directory (default: $TEXT_GAME_SAVE_DIR or ~/.config/text-game/saves)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("play", help="Play interactively (default)")

    sim = sub.add_parser("simulate", help="Let the model play against itself")
    sim.add_argument("--turns", type=int, default=DEFAULT_TURNS,
                     help=f"Maximum number of turns (default: {DEFAULT_TURNS})")
    sim.add_argument("--hint", default=None,
                     help="World hint; the player role proposes one when omitted")

    sub.add_parser("saves", help="List saved games")
    return parser


def setup_logging(config: Config) -> None:
    """Log to a file; the terminal belongs to the game."""
    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=config.log_file,
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    command = args.command or "play"

    try:
        config = Config.from_env(save_dir=args.save_dir, require_api_key=command != "saves")
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)
    storage = Storage(config.save_dir)

    if command == "saves":
        for name in storage.list_sessions():
            print(name)
        return 0

    llm = GeminiLLM(api_key=config.api_key, model=config.model)
    logger.info("starting %s with model=%s save_dir=%s", command, config.model, config.save_dir)

    if command == "simulate":
        try:
            asyncio.run(simulate(llm, turns=args.turns, hint=args.hint))
        except (TransportError, ReplyError, PromptError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    controller = Controller(llm=llm, storage=storage)
    asyncio.run(run_terminal(controller))
    return 1 if controller.state == "failed" else 0


if __name__ == "__main__":
    sys.exit(main())
