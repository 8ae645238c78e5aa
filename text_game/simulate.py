"""Self-play: a second model role plays the game against the game master.

The player role (stage="player") proposes a theme, then one action per turn
from what a player could see: world description, location, inventory, stats
and history. The run ends after `turns` turns, on WON/LOST, or on the first
turn that fails.
"""

import logging
from collections.abc import Callable

from text_game.engine import (
    ReplyError,
    format_history,
    format_stats,
    generate_world,
    process_turn,
)
from text_game.llm import LLM, TransportError
from text_game.models import GameSession
from text_game.prompts import (
    PLAYER_ACTION_PROMPT,
    PLAYER_THEME_PROMPT,
    PromptError,
    render_prompt,
)

logger = logging.getLogger(__name__)

FALLBACK_ACTION = "look around"
DEFAULT_TURNS = 10


async def propose_theme(llm: LLM) -> str:
    text = await llm("player", render_prompt(PLAYER_THEME_PROMPT, {}))
    return text.strip().strip('"')


async def propose_action(session: GameSession, llm: LLM) -> str:
    """Ask the player role for its next action; fall back to looking around."""
    state = session.state
    prompt = render_prompt(PLAYER_ACTION_PROMPT, {
        "world_description": session.world.description.strip(),
        "current_location": state.current_location or "(unknown)",
        "inventory": ", ".join(state.inventory) or "(empty)",
        "stats": format_stats(state.stats),
        "history": format_history(session.history),
    })
    try:
        text = await llm("player", prompt)
    except TransportError as e:
        logger.warning("player action failed, using fallback: %s", e)
        return FALLBACK_ACTION
    return text.strip().strip('"') or FALLBACK_ACTION


async def simulate(
    llm: LLM,
    *,
    turns: int = DEFAULT_TURNS,
    hint: str | None = None,
    player: LLM | None = None,
    out: Callable[[str], None] = print,
) -> GameSession:
    """Generate a world and let the player role play it. Returns the final session.

    World generation errors propagate. Turn errors end the run.
    """
    player = player or llm

    if not hint:
        hint = await propose_theme(player)
    out(f"Theme: {hint}")

    session = await generate_world(hint, llm=llm)
    out(f"World: {session.world.title} ({session.world.short_name})")
    out(f"Location: {session.state.current_location}")
    out(session.world.description.strip())

    for turn in range(1, turns + 1):
        action = await propose_action(session, player)
        out("")
        out(f"--- Turn {turn} ---")
        out(f"Player: {action}")

        try:
            result = await process_turn(session, action, llm=llm)
        except (TransportError, ReplyError, PromptError) as e:
            logger.error("simulation turn %d failed: %s", turn, e)
            out(f"Error: {e}")
            break

        out(f"Game: {result.outcome.strip()}")
        out(f"Status: {result.status}")
        if result.discovered_location:
            out(f"Discovered: {result.discovered_location}")
        last = session.last_entry
        if last is not None:
            for explanation in last.explanations:
                out(f"  - {explanation}")
        out("Stats: " + ", ".join(f"{k}={v}" for k, v in sorted(session.state.stats.items())))

        if result.status != "PLAYING":
            out(f"Game over: {result.status}")
            break

    return session
