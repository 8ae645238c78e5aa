"""Line-oriented terminal front-end.

Input is read on a daemon thread (input() blocks) and handed to the event
loop with call_soon_threadsafe. Everything else, rendering included, runs on
the loop after the controller has handled an event.

Keys:
    Enter     submit the line
    Tab       cycle `/load <prefix>` through matching saves (needs readline)
    Ctrl-C    quit at once, from any screen
    Ctrl-D    same as Ctrl-C
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import signal
import sys
import textwrap
import threading
from collections.abc import Callable
from typing import TextIO

from text_game.controller import (
    Controller,
    InputSubmitted,
    LogEntry,
    QuitKey,
    Resized,
)
from text_game.models import GameSession
from text_game.render import BOLD, RESET, state_panel, style_narration

try:
    import readline
except ImportError:  # Windows
    readline = None

logger = logging.getLogger(__name__)

PROMPTS = {
    "hint_entry": "Describe a world (Enter for random, /load <name>, /quit): ",
    "playing": "> ",
    "quit_confirm": "Save as (Enter to quit without saving, /cancel): ",
}


class Terminal:
    """Prints what changed in the controller after each event."""

    def __init__(self, controller: Controller, out: TextIO = sys.stdout) -> None:
        self.controller = controller
        self.out = out
        self._log: list[LogEntry] | None = None
        self._printed = 0
        self._session: GameSession | None = None
        self._state = ""
        self._input_error = ""
        self._notice = ""

    def prompt(self) -> str:
        return PROMPTS.get(self.controller.state, "")

    def write(self, text: str = "") -> None:
        print(text, file=self.out, flush=True)

    def _wrap(self, text: str) -> str:
        width = max(self.controller.width - 2, 20)
        return "\n".join(
            textwrap.fill(paragraph, width) if paragraph else ""
            for paragraph in text.splitlines()
        )

    def _entry(self, entry: LogEntry) -> str:
        if entry.kind == "user":
            return f"{BOLD}> {entry.text}{RESET}"
        if entry.kind == "game":
            return style_narration(self._wrap(entry.text))
        if entry.kind == "error":
            return f"! {entry.text}"
        return self._wrap(entry.text)

    def refresh(self, controller: Controller) -> None:
        c = controller
        if c.state != self._state:
            self._state = c.state
            if c.state == "loading":
                self.write("Generating your world, please wait...")
            elif c.state == "failed":
                self.write(f"\nError: {c.error}")
                self.write("The game cannot continue. Press Ctrl-C to exit.")
            elif c.state == "hint_entry":
                self.write("\nStart a new game.")
                saves = c.list_saves()
                if saves:
                    self.write("Saved games: " + ", ".join(saves))

        if c.log is not self._log:
            self._log = c.log
            self._printed = 0
        for entry in c.log[self._printed:]:
            self.write(self._entry(entry))
            self.write()
        self._printed = len(c.log)

        if c.session is not None and c.session is not self._session and c.state == "playing":
            self.write(state_panel(c.session))
            self.write()
        self._session = c.session

        if c.input_error and c.input_error != self._input_error:
            self.write(f"! {c.input_error}")
        self._input_error = c.input_error
        if c.notice and c.notice != self._notice:
            self.write(c.notice)
        self._notice = c.notice


def _read_lines(
    loop: asyncio.AbstractEventLoop,
    post: Callable[[object], None],
    prompt: Callable[[], str],
) -> None:
    while True:
        try:
            line = input(prompt())
        except EOFError:
            loop.call_soon_threadsafe(post, QuitKey())
            return
        except KeyboardInterrupt:
            loop.call_soon_threadsafe(post, QuitKey())
            return
        loop.call_soon_threadsafe(post, InputSubmitted(line))


def _install_completion(controller: Controller) -> None:
    if readline is None:
        return

    def complete(text: str, state: int) -> str | None:
        if state > 0:
            return None
        line = readline.get_line_buffer()
        completed = controller.complete(line)
        return completed if completed != line else None

    readline.set_completer_delims("")
    readline.set_completer(complete)
    readline.parse_and_bind("tab: complete")


async def run_terminal(controller: Controller, out: TextIO = sys.stdout) -> None:
    """Drive `controller` from the terminal until the player quits."""
    loop = asyncio.get_running_loop()
    terminal = Terminal(controller, out)
    post = controller.events.put_nowait

    size = shutil.get_terminal_size()
    controller.handle(Resized(size.columns, size.lines))

    try:
        loop.add_signal_handler(signal.SIGINT, post, QuitKey())
        loop.add_signal_handler(
            signal.SIGWINCH,
            lambda: post(Resized(*shutil.get_terminal_size())),
        )
    except (NotImplementedError, AttributeError):
        logger.debug("signal handlers unavailable on this platform")

    _install_completion(controller)
    terminal.refresh(controller)
    reader = threading.Thread(
        target=_read_lines, args=(loop, post, terminal.prompt), daemon=True,
    )
    reader.start()

    await controller.run(terminal.refresh)
    # Saves already started are finished; turns and generation are dropped.
    await controller.flush_saves()
    terminal.write()
