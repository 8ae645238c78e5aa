"""Interactive controller — the screen state machine and its event loop.

States (ScreenFSM):

    hint_entry ──generate──▶ loading ──world_ready──▶ playing ◀──cancel_quit── quit_confirm
        │  ▲                    │                      │  │                        ▲
        │  └─────restart────────┼──────────────────────┘  └──────confirm_quit──────┘
        └───────load────────────┼─────────▶ playing
                                └──fail──▶ failed ◀──fail── playing

All state changes happen in handle(), one event at a time. Model calls and
disk I/O run as asyncio tasks; each task posts exactly one completion event
back onto `events`. A turn task works on a deep copy of the session, and the
copy only becomes the active session when its TurnCompleted event is handled.

Admission: one slot for world generation, turns, loads and save-then-quit.
Input that arrives while the slot is taken is rejected, not queued.
Background saves (auto-save and /save) do not take the slot; they are
serialised by a lock instead.

Quitting: QuitKey ends the controller at once. Whatever is in flight is
detached and its completion event is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Literal

from statemachine import State, StateMachine

from text_game.directives import (
    HINT_DIRECTIVES,
    PLAY_DIRECTIVES,
    QUIT_CONFIRM_DIRECTIVES,
    Directive,
    PlainText,
    TabCompleter,
    UnrecognizedDirective,
    check_directive,
    parse_input,
    resolve_save_name,
)
from text_game.engine import (
    RANDOM_HINT,
    ReplyError,
    TurnResult,
    generate_world,
    process_turn,
)
from text_game.llm import LLM, TransportError
from text_game.models import GameSession
from text_game.prompts import PromptError
from text_game.render import format_opening, format_side_effects
from text_game.storage import PersistenceError, Storage

logger = logging.getLogger(__name__)

LogKind = Literal["user", "game", "effect", "notice", "error"]


@dataclass
class LogEntry:
    kind: LogKind
    text: str


class ScreenFSM(StateMachine):
    """Which screen the player is on. Guards transitions only."""

    hint_entry = State(initial=True)
    loading = State()
    playing = State()
    quit_confirm = State()
    failed = State(final=True)

    generate = hint_entry.to(loading)
    world_ready = loading.to(playing)
    load = hint_entry.to(playing)
    restart = playing.to(hint_entry)
    confirm_quit = playing.to(quit_confirm)
    cancel_quit = quit_confirm.to(playing)
    fail = loading.to(failed) | playing.to(failed)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InputSubmitted:
    text: str


@dataclass(frozen=True)
class QuitKey:
    pass


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class WorldGenerated:
    session: GameSession


@dataclass(frozen=True)
class WorldFailed:
    error: Exception


@dataclass(frozen=True)
class TurnCompleted:
    session: GameSession
    result: TurnResult


@dataclass(frozen=True)
class TurnFailed:
    error: Exception


@dataclass(frozen=True)
class SessionLoaded:
    name: str
    session: GameSession


@dataclass(frozen=True)
class LoadFailed:
    name: str
    error: Exception


@dataclass(frozen=True)
class SaveCompleted:
    name: str
    explicit: bool
    then_quit: bool = False


@dataclass(frozen=True)
class SaveFailed:
    name: str
    error: Exception
    explicit: bool
    then_quit: bool = False


@dataclass(frozen=True)
class TaskCrashed:
    error: Exception


Event = Any


def reconstruct_log(session: GameSession) -> list[LogEntry]:
    """Display log for a loaded session: opening, summary, retained turns."""
    log = [LogEntry("game", format_opening(session))]
    if session.history.summary:
        log.append(LogEntry("notice", f"Previously: {session.history.summary}"))
    for entry in session.history.entries:
        log.append(LogEntry("user", entry.player_action))
        log.append(LogEntry("game", entry.outcome.strip()))
        if entry.changes:
            log.append(LogEntry("effect", format_side_effects(entry.changes, session.world)))
    return log


class Controller:
    def __init__(self, *, llm: LLM, storage: Storage) -> None:
        self.fsm = ScreenFSM()
        self.events: asyncio.Queue = asyncio.Queue()
        self.session: GameSession | None = None
        self.log: list[LogEntry] = []
        self.input_error = ""
        self.notice = ""
        self.error: Exception | None = None
        self.finished = False
        self.width = 80
        self.height = 24
        self.completer = TabCompleter()

        self._llm = llm
        self._storage = storage
        self._pending: str | None = None
        self._tasks: set[asyncio.Task] = set()
        self._save_tasks: set[asyncio.Task] = set()
        self._save_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self.fsm.current_state.id

    @property
    def busy(self) -> bool:
        return self._pending is not None

    def list_saves(self) -> list[str]:
        return self._storage.list_sessions()

    def complete(self, value: str) -> str:
        """Tab completion for `/load <prefix>` on the hint screen."""
        if self.state != "hint_entry":
            return value
        return self.completer.complete(value, self.list_saves())

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self, on_change: Callable[[Controller], None] | None = None) -> None:
        """Handle events until the player quits."""
        while not self.finished:
            event = await self.events.get()
            self.handle(event)
            if on_change is not None:
                on_change(self)

    async def settle(self) -> None:
        """Handle events until nothing is queued and no task is outstanding."""
        while True:
            while not self.events.empty():
                self.handle(self.events.get_nowait())
            outstanding = [t for t in self._tasks if not t.done()]
            if not outstanding:
                if self.events.empty():
                    return
                continue
            await asyncio.wait(outstanding)

    async def flush_saves(self) -> None:
        outstanding = [t for t in self._save_tasks if not t.done()]
        if outstanding:
            await asyncio.wait(outstanding)

    def handle(self, event: Event) -> None:
        if self.finished:
            logger.debug("ignoring %s after quit", type(event).__name__)
            return

        if isinstance(event, QuitKey):
            if self._pending is not None:
                logger.info("quitting with %s in flight; its result is discarded", self._pending)
            self.finished = True
        elif isinstance(event, Resized):
            self.width, self.height = event.width, event.height
        elif isinstance(event, InputSubmitted):
            self._on_input(event.text)
        elif isinstance(event, WorldGenerated):
            self._on_world_generated(event)
        elif isinstance(event, WorldFailed):
            self._pending = None
            self._fail(event.error)
        elif isinstance(event, TurnCompleted):
            self._on_turn_completed(event)
        elif isinstance(event, TurnFailed):
            self._pending = None
            self._fail(event.error)
        elif isinstance(event, SessionLoaded):
            self._on_session_loaded(event)
        elif isinstance(event, LoadFailed):
            self._pending = None
            self.input_error = f"failed to load '{event.name}': {event.error}"
        elif isinstance(event, SaveCompleted):
            self._on_save_completed(event)
        elif isinstance(event, SaveFailed):
            self._on_save_failed(event)
        elif isinstance(event, TaskCrashed):
            self._pending = None
            if self.state in ("loading", "playing"):
                self._fail(event.error)
            else:
                self.input_error = f"unexpected error: {event.error}"
        else:
            raise TypeError(f"unknown event {event!r}")

    # ------------------------------------------------------------------
    # Input routing
    # ------------------------------------------------------------------

    def _on_input(self, text: str) -> None:
        state = self.state
        if state == "failed":
            return
        if state == "loading":
            self.notice = "Still generating your world..."
            return
        if self.busy:
            self.notice = "Still working on your last request..."
            return

        self.notice = ""
        self.completer.reset()
        parsed = parse_input(text)
        if state == "hint_entry":
            self._hint_input(parsed)
        elif state == "playing":
            self._play_input(parsed)
        elif state == "quit_confirm":
            self._quit_confirm_input(parsed)

    def _hint_input(self, parsed: Directive | PlainText) -> None:
        if isinstance(parsed, Directive):
            try:
                check_directive(parsed, HINT_DIRECTIVES)
            except UnrecognizedDirective as e:
                self.input_error = str(e)
                return
            if parsed.name == "quit":
                self.finished = True
                return
            if not parsed.argument:
                self.input_error = "usage: /load <name>"
                return
            try:
                name = resolve_save_name(parsed.argument, self.list_saves())
            except LookupError as e:
                self.input_error = f"failed to load '{parsed.argument}': {e}"
                return
            self.input_error = ""
            self._start("load", self._load(name))
            return

        self.input_error = ""
        self.fsm.generate()
        self._start("world", self._generate(parsed.text or RANDOM_HINT))

    def _play_input(self, parsed: Directive | PlainText) -> None:
        if isinstance(parsed, Directive):
            if parsed.name == "save" and not parsed.argument:
                self._append("error", "Usage: /save <name>")
                return
            try:
                check_directive(parsed, PLAY_DIRECTIVES)
            except UnrecognizedDirective as e:
                self._append("error", str(e))
                return
            if parsed.name == "save":
                self._save_in_background(parsed.argument, explicit=True)
            elif parsed.name == "restart":
                self.session = None
                self.log = []
                self.fsm.restart()
            elif parsed.name == "quit":
                self.input_error = ""
                self.fsm.confirm_quit()
            return

        if not parsed.text:
            return
        # Echoed now; the outcome is appended when the turn completes.
        self._append("user", parsed.text)
        working = self.session.model_copy(deep=True)
        self._start("turn", self._turn(working, parsed.text))

    def _quit_confirm_input(self, parsed: Directive | PlainText) -> None:
        if isinstance(parsed, Directive):
            try:
                check_directive(parsed, QUIT_CONFIRM_DIRECTIVES)
            except UnrecognizedDirective as e:
                self.input_error = f"{e}, a save name, or nothing to quit without saving"
                return
            self.input_error = ""
            self.fsm.cancel_quit()
            return

        if not parsed.text:
            self.finished = True
            return
        self._start("save", self._save(self.session, parsed.text, explicit=True, then_quit=True))

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------

    def _on_world_generated(self, event: WorldGenerated) -> None:
        self._pending = None
        if self.state != "loading":
            logger.warning("dropping world generated while in %s", self.state)
            return
        self.session = event.session
        self.fsm.world_ready()
        self.log = [LogEntry("game", format_opening(self.session))]
        self._save_in_background(self.session.world.short_name, explicit=False)

    def _on_turn_completed(self, event: TurnCompleted) -> None:
        self._pending = None
        if self.state != "playing":
            logger.warning("dropping turn result while in %s", self.state)
            return
        self.session = event.session
        self._append("game", event.result.outcome.strip())
        last = self.session.last_entry
        if last is not None and last.changes:
            self._append("effect", format_side_effects(last.changes, self.session.world))
        if event.result.status == "WON":
            self._append("notice", "You have won! Type /restart to play a new world, or /quit.")
        elif event.result.status == "LOST":
            self._append("notice", "You have lost. Type /restart to play a new world, or /quit.")
        self._save_in_background(self.session.world.short_name, explicit=False)

    def _on_session_loaded(self, event: SessionLoaded) -> None:
        self._pending = None
        if self.state != "hint_entry":
            logger.warning("dropping loaded session %r while in %s", event.name, self.state)
            return
        self.session = event.session
        self.input_error = ""
        self.fsm.load()
        self.log = reconstruct_log(self.session)

    def _on_save_completed(self, event: SaveCompleted) -> None:
        if event.then_quit:
            self._pending = None
            self.finished = True
            return
        if event.explicit and self.state == "playing":
            self._append("notice", f"Game saved as '{event.name}'")

    def _on_save_failed(self, event: SaveFailed) -> None:
        logger.error("save %r failed: %s", event.name, event.error)
        if event.then_quit:
            self._pending = None
            self.input_error = (
                f"failed to save: {event.error}. Enter another name, "
                "press Enter to quit without saving, or /cancel"
            )
            return
        if self.state == "playing":
            prefix = "Failed to save" if event.explicit else "Auto-save failed"
            self._append("error", f"{prefix}: {event.error}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append(self, kind: LogKind, text: str) -> None:
        self.log.append(LogEntry(kind, text))

    def _fail(self, error: Exception) -> None:
        self.error = error
        self.fsm.fail()

    def _start(self, kind: str, coro: Coroutine[Any, Any, Event]) -> None:
        self._pending = kind
        self._spawn(coro)

    def _spawn(self, coro: Coroutine[Any, Any, Event]) -> asyncio.Task:
        task = asyncio.create_task(self._post(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _post(self, coro: Coroutine[Any, Any, Event]) -> None:
        try:
            event = await coro
        except Exception as e:
            logger.exception("background task crashed")
            event = TaskCrashed(e)
        self.events.put_nowait(event)

    def _save_in_background(self, name: str, *, explicit: bool) -> None:
        task = self._spawn(self._save(self.session, name, explicit=explicit))
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    # ------------------------------------------------------------------
    # Tasks: each returns exactly one completion event
    # ------------------------------------------------------------------

    async def _generate(self, hint: str) -> Event:
        try:
            session = await generate_world(hint, llm=self._llm)
        except (TransportError, ReplyError, PromptError) as e:
            logger.error("world generation failed: %s", e)
            return WorldFailed(e)
        return WorldGenerated(session)

    async def _turn(self, working: GameSession, action: str) -> Event:
        try:
            result = await process_turn(working, action, llm=self._llm)
        except (TransportError, ReplyError, PromptError) as e:
            logger.error("turn failed: %s", e)
            return TurnFailed(e)
        return TurnCompleted(working, result)

    async def _load(self, name: str) -> Event:
        try:
            session = await asyncio.to_thread(self._storage.load, name)
        except PersistenceError as e:
            return LoadFailed(name, e)
        return SessionLoaded(name, session)

    async def _save(
        self, session: GameSession, name: str, *, explicit: bool, then_quit: bool = False,
    ) -> Event:
        # An active session is replaced, never mutated.
        async with self._save_lock:
            try:
                await asyncio.to_thread(self._storage.save, session, name)
            except PersistenceError as e:
                return SaveFailed(name, e, explicit=explicit, then_quit=then_quit)
        return SaveCompleted(name, explicit=explicit, then_quit=then_quit)
