"""Text rendering for the play screen.

Mappings (stats, changes) are always rendered sorted by key so output is
the same from run to run.
"""

from text_game.models import GameSession, World

BOLD = "\033[1m"
DIALOGUE = "\033[3;38;5;115m"
RESET = "\033[0m"

POLARITY_MARKERS = {"good": "▲", "bad": "▼"}


def format_opening(session: GameSession) -> str:
    """Title, location and world description, shown when play begins."""
    world = session.world
    return (
        f"{world.title}\nLocation: {session.state.current_location}\n\n"
        f"{world.description.strip()}"
    )


def format_side_effects(changes: dict[str, str], world: World | None = None) -> str:
    results = []
    for key, change in changes.items():
        name = world.display_name(key) if world is not None else key
        results.append(f"{name}: {change}")
    return "Effects: " + ", ".join(sorted(results))


def state_panel(session: GameSession) -> str:
    world = session.world
    state = session.state

    lines = ["TITLE", world.title, "", "LOCATION", state.current_location, "", "STATS"]
    lines.append(f"{world.stat_display_names.get('health', 'Health')}: {state.health}")
    lines.append(f"{world.stat_display_names.get('progress', 'Progress')}: {state.progress}")
    for key in sorted(state.stats):
        if key in ("health", "progress"):
            continue
        marker = POLARITY_MARKERS.get(world.stat_polarities.get(key, ""), "")
        label = f"{world.display_name(key)} {marker}".rstrip()
        lines.append(f"{label}: {state.stats[key]}")

    lines += ["", "INVENTORY"]
    if state.inventory:
        lines += [f"- {item}" for item in state.inventory]
    else:
        lines.append("(empty)")
    return "\n".join(lines)


def style_narration(text: str) -> str:
    """Highlight **bold** spans and "quoted" dialogue with ANSI escapes."""
    out: list[str] = []
    in_bold = False
    in_quote = False
    i = 0
    while i < len(text):
        if text.startswith("**", i):
            in_bold = not in_bold
            out.append(BOLD if in_bold else RESET + (DIALOGUE if in_quote else ""))
            i += 2
            continue
        ch = text[i]
        if ch == '"':
            if not in_quote:
                in_quote = True
                out.append(DIALOGUE + ch)
            else:
                in_quote = False
                out.append(ch + RESET + (BOLD if in_bold else ""))
            i += 1
            continue
        out.append(ch)
        i += 1
    if in_bold or in_quote:
        out.append(RESET)
    return "".join(out)
