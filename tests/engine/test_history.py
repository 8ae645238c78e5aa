"""Tests for history compaction and history formatting."""

from unittest.mock import AsyncMock

import pytest

from text_game.engine import (
    EmptyReply,
    fold_history,
    format_history,
    needs_compaction,
    summarize_history,
)
from text_game.llm import TransportError
from text_game.models import GameHistory, HistoryEntry

from conftest import make_session


def test_needs_compaction_threshold():
    assert not needs_compaction(make_session(entries=8).history)
    assert needs_compaction(make_session(entries=9).history)


async def test_fold_keeps_three_newest():
    session = make_session(entries=9)
    llm = AsyncMock(return_value="  The keeper told tales.  ")

    folded = await fold_history(session.history, llm=llm)

    assert folded.summary == "The keeper told tales."
    assert [e.player_action for e in folded.entries] == ["action 7", "action 8", "action 9"]
    assert len(session.history.entries) == 9
    stage, prompt = llm.call_args[0]
    assert stage == "summary"
    assert "Action: action 6" in prompt
    assert "action 7" not in prompt


async def test_fold_includes_previous_summary():
    history = make_session(entries=6).history
    history.summary = "Earlier, a storm."
    llm = AsyncMock(return_value="Later, calm.")
    folded = await fold_history(history, llm=llm)
    assert "Earlier, a storm." in llm.call_args[0][1]
    assert folded.summary == "Later, calm."


@pytest.mark.parametrize("entries", [0, 3, 5])
async def test_fold_is_noop_at_or_below_floor(entries):
    history = make_session(entries=entries).history
    llm = AsyncMock()
    assert await fold_history(history, llm=llm) is history
    llm.assert_not_called()


async def test_fold_empty_reply():
    history = make_session(entries=9).history
    with pytest.raises(EmptyReply):
        await fold_history(history, llm=AsyncMock(return_value="   "))


async def test_summarize_history_replaces_history():
    session = make_session(entries=9)
    await summarize_history(session, llm=AsyncMock(return_value="Summary."))
    assert session.history.summary == "Summary."
    assert len(session.history.entries) == 3


async def test_summarize_history_failure_leaves_session():
    session = make_session(entries=9)
    before = session.history.model_dump()
    with pytest.raises(TransportError):
        await summarize_history(session, llm=AsyncMock(side_effect=TransportError("down")))
    assert session.history.model_dump() == before


def test_format_history():
    history = GameHistory(
        summary="You arrived by boat.",
        entries=[
            HistoryEntry(
                player_action="open the door",
                outcome="It creaks open.\n",
                changes={"fear": "+1", "courage": "-1"},
                inventory=["matches", "rope"],
            ),
            HistoryEntry(player_action="wait", outcome="Nothing.", status="LOST"),
        ],
    )
    assert format_history(history) == (
        "Summary of previous events: You arrived by boat.\n\n"
        "Action: open the door\n"
        "Outcome: It creaks open.\n"
        "Status: PLAYING\n"
        "Side Effects: courage: -1, fear: +1\n"
        "Inventory: matches, rope\n\n"
        "Action: wait\n"
        "Outcome: Nothing.\n"
        "Status: LOST"
    )


def test_format_empty_history():
    assert format_history(GameHistory()) == ""
