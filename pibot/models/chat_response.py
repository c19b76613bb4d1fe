# pibot/models/chat_response.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Response models
------------------------------
Shapes returned by the HTTP / WebSocket surface.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from pibot.core.pipeline import TurnResult
from pibot.core.types import BackendKind, Role, Session, Turn


class UsageInfo(BaseModel):
    input_tokens: int
    output_tokens: int


class ChatResponse(BaseModel):
    """Result of one chat turn."""

    reply_text: str
    model: str
    backend: BackendKind
    session_id: str
    usage: Optional[UsageInfo] = None

    @classmethod
    def from_result(cls, result: TurnResult) -> "ChatResponse":
        usage = None
        if result.usage is not None:
            usage = UsageInfo(
                input_tokens=result.usage.input_tokens,
                output_tokens=result.usage.output_tokens,
            )
        return cls(
            reply_text=result.reply_text,
            model=result.model,
            backend=result.backend,
            session_id=result.session_id,
            usage=usage,
        )


class TurnView(BaseModel):
    id: str
    role: Role
    content: str
    timestamp: int

    @classmethod
    def from_turn(cls, turn: Turn) -> "TurnView":
        return cls(
            id=turn.id, role=turn.role, content=turn.content, timestamp=turn.timestamp
        )


class SessionView(BaseModel):
    """Session snapshot for GET /sessions/history."""

    session_id: str
    author_id: str
    channel_id: Optional[str] = None
    model: Optional[str] = None
    created_at: int
    updated_at: int
    turn_count: int
    turns: List[TurnView]

    @classmethod
    def from_session(cls, session: Session, limit: Optional[int] = None) -> "SessionView":
        turns = session.turns
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return cls(
            session_id=session.id,
            author_id=session.author_id,
            channel_id=session.channel_id,
            model=session.model,
            created_at=session.created_at,
            updated_at=session.updated_at,
            turn_count=len(session.turns),
            turns=[TurnView.from_turn(t) for t in turns],
        )
