# pibot/models/chat_request.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Request models
-----------------------------
Canonical request payloads for the HTTP / WebSocket surface.

- ChatRequest      : one user message for POST /chat and WS /ws/chat
- SessionRef       : which conversation (author + optional channel)
- ModelSwitchRequest : PUT /sessions/model
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, constr


class SessionRef(BaseModel):
    """
    Identifies one conversation.

    Fields
    ------
    author_id:
        Platform id of the human talking to the bot.
    channel_id:
        Platform id of the channel. Omit it for direct messages: the
        conversation is then private to the author.
    """

    author_id: constr(min_length=1, strip_whitespace=True) = Field(
        ...,
        description="Platform id of the message author.",
        examples=["184467440737095516"],
    )
    channel_id: Optional[constr(min_length=1, strip_whitespace=True)] = Field(
        default=None,
        description="Platform id of the channel; omit for direct messages.",
        examples=["998877665544332211"],
    )


class ChatRequest(SessionRef):
    """Canonical request body for /chat."""

    text: constr(min_length=1, strip_whitespace=True) = Field(
        ...,
        description="User message in plain text (mentions already stripped).",
        examples=["Hello PiBot, what can you do?"],
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "author_id": "184467440737095516",
                    "channel_id": "998877665544332211",
                    "text": "Hello PiBot, what can you do?",
                },
                {
                    "author_id": "184467440737095516",
                    "text": "Remind me what we talked about.",
                },
            ]
        }
    }


class ModelSwitchRequest(SessionRef):
    """Body for PUT /sessions/model. `model` is an id or a display name."""

    model: constr(min_length=1, strip_whitespace=True) = Field(
        ...,
        description="Model id or display name (case-insensitive).",
        examples=["claude-3-5-haiku-20241022", "Claude 3.5 Haiku"],
    )
