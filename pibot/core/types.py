# pibot/core/types.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Shared type definitions
--------------------------------------
Central place for the entities shared across the core:

- Role         : "user" | "assistant" | "system"
- BackendKind  : closed set of backend variants (cloud / local)
- Turn         : one immutable message in a conversation
- Session      : one conversation thread (ordered turns + selected model)
- ChatUsage    : token counts reported by a backend
- ChatResult   : what a backend returns for one chat call
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

Role = Literal["user", "assistant", "system"]


class BackendKind(str, Enum):
    """Which backend family serves a model."""

    CLOUD = "cloud"    # Anthropic Messages API
    LOCAL = "local"    # Ollama (OpenAI-compatible endpoint)

    @property
    def display_name(self) -> str:
        return _BACKEND_DISPLAY_NAMES[self]


_BACKEND_DISPLAY_NAMES = {
    BackendKind.CLOUD: "Anthropic",
    BackendKind.LOCAL: "Ollama",
}


# ---------------------------------------------------------------------------
# Conversation entities
# ---------------------------------------------------------------------------


class Turn(BaseModel):
    """
    One message in a session. Immutable once created.

    Serialized as one JSON line in the session log. `author_id` and
    `channel_id` also accept the legacy `userId` / `channelId` keys on load.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    role: Role
    content: str
    timestamp: int
    author_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("author_id", "userId"),
    )
    channel_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("channel_id", "channelId"),
    )

    def to_log_line(self) -> str:
        """Encode this turn as a single JSON line (no trailing newline)."""
        return self.model_dump_json(exclude_none=True)

    def as_message(self) -> dict:
        """OpenAI-style {"role", "content"} dict."""
        return {"role": self.role, "content": self.content}


class Session(BaseModel):
    """
    Per-conversation state.

    Attributes
    ----------
    id:
        Identity derived from (author_id, channel_id), see core.identity.
    author_id / channel_id:
        Who and where the conversation happens.
    turns:
        Ordered turns; insertion order is chronological order.
    created_at / updated_at:
        Epoch ms of the first / last turn (creation time while empty).
    model:
        Currently selected model id. None only right after a cold load,
        before the session manager fills in the default.
    """

    id: str
    author_id: str
    channel_id: Optional[str] = None
    turns: List[Turn] = Field(default_factory=list)
    created_at: int
    updated_at: int
    model: Optional[str] = None


# ---------------------------------------------------------------------------
# Backend results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChatUsage:
    """Token counts as reported by the backend."""

    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class ChatResult:
    """
    Result of a single backend chat call.

    Attributes
    ----------
    content:
        Generated assistant text.
    model:
        Model id reported by the backend (falls back to the requested id).
    usage:
        Optional token usage; some local servers omit it.
    """

    content: str
    model: str
    usage: Optional[ChatUsage] = None
