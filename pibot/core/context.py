# pibot/core/context.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Context assembly
-------------------------------
Turns a session's history into the bounded message list sent to a backend.

The window is message-count based (not token based): the last
`max_turns` turns, oldest first, optionally preceded by one synthetic
system turn. The synthetic turn is never persisted.
"""

from __future__ import annotations

from typing import List, Optional

from pibot.core.types import Session, Turn
from pibot.utils.timers import now_ms as _now_ms

DEFAULT_CONTEXT_TURNS = 50
SYSTEM_TURN_ID = "system"


def build_context(
    session: Session,
    max_turns: int = DEFAULT_CONTEXT_TURNS,
    system_prompt: Optional[str] = None,
    *,
    now_ms: Optional[int] = None,
) -> List[Turn]:
    """
    Return the turns to send for one generation request.

    Parameters
    ----------
    session:
        Session snapshot; it is not modified.
    max_turns:
        Window size. Values <= 0 select no history turns.
    system_prompt:
        When non-empty, one system turn is prepended, so the result can be
        `max_turns + 1` long.
    now_ms:
        Timestamp for the synthetic system turn (defaults to "now").
    """
    recent: List[Turn] = list(session.turns[-max_turns:]) if max_turns > 0 else []

    if not system_prompt:
        return recent

    system_turn = Turn(
        id=SYSTEM_TURN_ID,
        role="system",
        content=system_prompt,
        timestamp=_now_ms() if now_ms is None else now_ms,
    )
    return [system_turn, *recent]
