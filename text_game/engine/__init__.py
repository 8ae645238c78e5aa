"""Turn protocol between the game and the model.

Three model calls, each a Handlebars prompt in, YAML document out:
  world    — generate_world(hint): world, initial location and initial state.
  turn     — process_turn(session, action): outcome, status, optional
             discovered location, explanations, changes and the full new state.
  summary  — summarize_history(session): fold older turns into a prose summary
             (run automatically by process_turn when history passes 8 entries).

Reply handling (parse_world_reply / parse_turn_reply):
  blank text            → EmptyReply
  not YAML / not a map  → MalformedReply (keeps the raw text)
  wrong shape           → MalformedReply
A failed call or rejected reply never modifies the session.
"""

from .core import (  # noqa: F401
    RANDOM_HINT,
    TurnResult,
    build_turn_prompt,
    format_locations,
    format_stats,
    generate_world,
    process_turn,
)
from .history import (  # noqa: F401
    COMPACTION_THRESHOLD,
    KEEP_RECENT,
    RETENTION_FLOOR,
    fold_history,
    format_changes,
    format_history,
    needs_compaction,
    summarize_history,
)
from .replies import (  # noqa: F401
    EmptyReply,
    MalformedReply,
    ReplyError,
    parse_turn_reply,
    parse_world_reply,
    strip_fences,
)
