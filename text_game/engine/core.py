"""World generation and turn resolution.

Turn flow:
  1. Compact history if it is longer than the threshold (failure is logged,
     the turn goes on with the full history).
  2. Render the turn prompt: world, secret conditions, known locations,
     current state, history and the action.
  3. Call the model and parse the reply.
  4. Apply: replace the state, record any discovered location, append the
     history entry.

Nothing is written to the session before step 4, so a failed call or an
unusable reply leaves it exactly as it was.
"""

import logging
from dataclasses import dataclass

from text_game.llm import LLM, TransportError
from text_game.models import (
    GameHistory,
    GameSession,
    HistoryEntry,
    Location,
    TurnStatus,
)
from text_game.prompts import (
    GENERATE_WORLD_PROMPT,
    PROCESS_TURN_PROMPT,
    PromptError,
    render_prompt,
)
from text_game.storage import slugify

from .history import fold_history, format_history, needs_compaction
from .replies import ReplyError, parse_turn_reply, parse_world_reply

logger = logging.getLogger(__name__)

RANDOM_HINT = "random"


@dataclass
class TurnResult:
    """What the caller needs to show after a turn."""

    outcome: str
    status: TurnStatus
    discovered_location: str = ""


# ---------------------------------------------------------------------------
# Prompt sections
# ---------------------------------------------------------------------------

def format_locations(locations: dict[str, Location]) -> str:
    lines = []
    for name in sorted(locations):
        loc = locations[name]
        people = ", ".join(loc.people) or "none"
        objects = ", ".join(loc.objects) or "none"
        lines.append(
            f"- {name}: {loc.description.strip()} (People: {people}; Objects: {objects})"
        )
    return "\n".join(lines)


def format_stats(stats: dict[str, str]) -> str:
    if not stats:
        return "(none)"
    return "\n".join(f"- {key}: {stats[key]}" for key in sorted(stats))


def build_turn_prompt(
    session: GameSession, action: str, history: GameHistory | None = None,
) -> str:
    """Render the turn prompt. `history` overrides the session's own."""
    state = session.state
    return render_prompt(PROCESS_TURN_PROMPT, {
        "world_description": session.world.description.strip(),
        "win_conditions": session.world.win_conditions.strip(),
        "lose_conditions": session.world.lose_conditions.strip(),
        "known_locations": format_locations(session.locations),
        "current_location": state.current_location or "(unknown)",
        "inventory": ", ".join(state.inventory) or "(empty)",
        "stats": format_stats(state.stats),
        "health": state.health,
        "progress": state.progress,
        "history": format_history(history if history is not None else session.history),
        "action": action,
    })


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def generate_world(hint: str, *, llm: LLM) -> GameSession:
    """Ask the model for a new world. `hint` of "random" (or blank) means any theme."""
    hint = hint.strip() or RANDOM_HINT
    prompt = render_prompt(GENERATE_WORLD_PROMPT, {
        "hint": hint,
        "random": hint.lower() == RANDOM_HINT,
    })
    text = await llm("world", prompt)
    reply = parse_world_reply(text)

    world = reply.world.model_copy(update={
        "short_name": slugify(reply.world.short_name or reply.world.title),
    })
    state = reply.state
    locations: dict[str, Location] = {}
    initial = reply.initial_location
    if initial is not None and initial.name:
        locations[initial.name] = initial
        if not state.current_location:
            state.current_location = initial.name

    logger.info("generated world title=%r short_name=%s", world.title, world.short_name)
    return GameSession(world=world, state=state, locations=locations)


async def process_turn(session: GameSession, action: str, *, llm: LLM) -> TurnResult:
    """Resolve one player action and apply it to `session`."""
    history = session.history
    if needs_compaction(history):
        try:
            history = await fold_history(history, llm=llm)
        except (TransportError, ReplyError, PromptError) as e:
            logger.warning("failed to summarize history, continuing with full history: %s", e)

    prompt = build_turn_prompt(session, action, history)
    text = await llm("turn", prompt)
    reply = parse_turn_reply(text)

    # Apply. Everything below works on already-validated values.
    discovered = ""
    loc = reply.discovered_location
    if loc is not None and loc.name:
        session.locations[loc.name] = loc
        discovered = loc.name

    session.state = reply.state
    session.history = GameHistory(
        summary=history.summary,
        entries=[
            *history.entries,
            HistoryEntry(
                player_action=action,
                outcome=reply.outcome,
                status=reply.status,
                explanations=reply.explanations,
                changes=reply.changes,
                inventory=list(reply.state.inventory),
            ),
        ],
    )

    current = session.state.current_location
    if current and session.locations and current not in session.locations:
        logger.warning("state references unknown location %r", current)

    return TurnResult(
        outcome=reply.outcome, status=reply.status, discovered_location=discovered,
    )