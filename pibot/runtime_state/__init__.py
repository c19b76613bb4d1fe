"""
Runtime state package for the PiBot server.

This package is responsible for per-conversation state: the in-memory
session cache and the append-only JSONL log behind it.

Typical usage (e.g. in core/pipeline.py):

    from pibot.runtime_state import SessionLogStore, SessionManager

    sessions = SessionManager(SessionLogStore(settings.resolved_sessions_dir))
    await sessions.initialize()

    session = await sessions.get_or_create(author_id, channel_id, default_model)
    await sessions.append_turn(author_id, channel_id, "user", text)
"""

from .log_store import SessionLogStore
from .sessions import SessionManager

__all__ = [
    "SessionLogStore",
    "SessionManager",
]
