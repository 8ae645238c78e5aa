"""Parsing of typed input into directives and plain text.

Pure functions only: nothing here knows about the terminal or the session,
so the controller's routing can be tested line by line.
"""

from __future__ import annotations

from dataclasses import dataclass

# Valid directives per controller state, in the order they are shown to the user.
HINT_DIRECTIVES = ("/load <name>", "/quit")
PLAY_DIRECTIVES = ("/save <name>", "/restart", "/quit")
QUIT_CONFIRM_DIRECTIVES = ("/cancel",)


@dataclass(frozen=True)
class Directive:
    """A `/`-prefixed command. `name` has no slash; `argument` is stripped."""

    name: str
    argument: str = ""

    @property
    def text(self) -> str:
        return f"/{self.name} {self.argument}".rstrip()


@dataclass(frozen=True)
class PlainText:
    text: str


class UnrecognizedDirective(ValueError):
    """The directive is not valid where it was typed."""

    def __init__(self, text: str, valid: tuple[str, ...]) -> None:
        super().__init__(
            f"unrecognized command: {text}. Valid commands: {', '.join(valid)}"
        )
        self.text = text
        self.valid = valid


def parse_input(text: str) -> Directive | PlainText:
    """Split input into a directive or plain text.

    "/load  old game " → Directive("load", "old game")
    "/save"            → Directive("save", "")
    "open the door"    → PlainText("open the door")
    """
    stripped = text.strip()
    if not stripped.startswith("/"):
        return PlainText(stripped)
    name, _, argument = stripped[1:].partition(" ")
    return Directive(name=name.lower(), argument=argument.strip())


def check_directive(directive: Directive, valid: tuple[str, ...]) -> None:
    """Raise UnrecognizedDirective unless `directive` is one of `valid`."""
    names = {v.split()[0].lstrip("/") for v in valid}
    if directive.name not in names:
        raise UnrecognizedDirective(directive.text, valid)


def load_candidates(prefix: str, saves: list[str]) -> list[str]:
    return [s for s in saves if s.startswith(prefix)]


def resolve_save_name(name: str, saves: list[str]) -> str:
    """Exact match first, then a unique prefix match.

    Raises LookupError with a user-facing message otherwise.
    """
    if name in saves:
        return name
    matches = load_candidates(name, saves)
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise LookupError(f"no save named '{name}'")
    raise LookupError(f"'{name}' is ambiguous: {', '.join(matches)}")


class TabCompleter:
    """Cycles `/load <prefix>` through the saves that start with the prefix.

    The prefix typed before the first Tab is remembered while the line still
    holds the last completion. Any edit in between starts a new search, as
    does reset().
    """

    def __init__(self) -> None:
        self._search: str | None = None
        self._index = -1
        self._last: str | None = None

    def reset(self) -> None:
        self._search = None
        self._index = -1
        self._last = None

    def complete(self, value: str, saves: list[str]) -> str:
        if value != self._last:
            self.reset()
        if not value.startswith("/load "):
            return value
        if self._search is None:
            self._search = value[len("/load "):]
        matches = load_candidates(self._search, saves)
        if not matches:
            return value
        self._index = (self._index + 1) % len(matches)
        self._last = "/load " + matches[self._index]
        return self._last
