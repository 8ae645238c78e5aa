"""History compaction.

Turn history grows by one entry per turn and is replayed into every turn
prompt. Once it passes COMPACTION_THRESHOLD entries, the older ones are folded
into a running prose summary and only the KEEP_RECENT newest stay verbatim.
"""

import logging

from text_game.llm import LLM
from text_game.models import GameHistory, GameSession, HistoryEntry
from text_game.prompts import SUMMARIZE_HISTORY_PROMPT, render_prompt

from .replies import EmptyReply

logger = logging.getLogger(__name__)

COMPACTION_THRESHOLD = 8
RETENTION_FLOOR = 5
KEEP_RECENT = 3


def needs_compaction(history: GameHistory) -> bool:
    return len(history.entries) > COMPACTION_THRESHOLD


def format_changes(changes: dict[str, str]) -> str:
    return ", ".join(f"{key}: {changes[key]}" for key in sorted(changes))


def format_history(history: GameHistory) -> str:
    """Render summary and retained entries for the turn prompt."""
    parts: list[str] = []
    if history.summary:
        parts.append(f"Summary of previous events: {history.summary}")
    for entry in history.entries:
        lines = [
            f"Action: {entry.player_action}",
            f"Outcome: {entry.outcome.strip()}",
            f"Status: {entry.status}",
        ]
        if entry.changes:
            lines.append(f"Side Effects: {format_changes(entry.changes)}")
        if entry.inventory:
            lines.append(f"Inventory: {', '.join(entry.inventory)}")
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def format_events(entries: list[HistoryEntry]) -> str:
    return "\n".join(
        f"Action: {e.player_action}\nOutcome: {e.outcome.strip()}" for e in entries
    )


async def fold_history(history: GameHistory, *, llm: LLM) -> GameHistory:
    """Return a compacted copy of `history`; the argument is left untouched.

    At or below RETENTION_FLOOR entries the same history is returned.
    Raises EmptyReply when the model returns no summary, and lets transport
    and template errors propagate.
    """
    if len(history.entries) <= RETENTION_FLOOR:
        return history

    older = history.entries[:-KEEP_RECENT]
    recent = history.entries[-KEEP_RECENT:]

    prompt = render_prompt(SUMMARIZE_HISTORY_PROMPT, {
        "current_summary": history.summary,
        "new_events": format_events(older),
    })
    text = await llm("summary", prompt)
    summary = text.strip() if text else ""
    if not summary:
        raise EmptyReply("no content returned from the model during summarization")

    logger.debug("folded %d entries into summary len=%d", len(older), len(summary))
    return GameHistory(
        summary=summary,
        entries=[e.model_copy(deep=True) for e in recent],
    )


async def summarize_history(session: GameSession, *, llm: LLM) -> None:
    """Compact `session.history` in place. No change on failure."""
    session.history = await fold_history(session.history, llm=llm)
