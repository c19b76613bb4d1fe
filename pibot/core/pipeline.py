# pibot/core/pipeline.py
# -*- coding: utf-8 -*-
"""
PiBot - Chat pipeline
---------------------
High-level flow for a single chat turn:

    (author, channel, text)
      -> SessionManager.get_or_create      (hydrate or create, default model)
      -> SessionManager.append_turn(user)  (cache, then durable log)
      -> build_context                     (last N turns + system prompt)
      -> LLMRouter.chat                    (resolve backend, call it)
      -> SessionManager.append_turn(assistant)
      -> TurnResult

IMPORTANT:
- The user turn is durable before the backend is called. If the backend
  fails, the user turn stays in the history and no assistant turn is added.
- Errors are not retried here; they propagate to the HTTP/WS layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pibot.core.context import DEFAULT_CONTEXT_TURNS, build_context
from pibot.core.router import LLMRouter
from pibot.core.types import BackendKind, ChatUsage
from pibot.runtime_state.sessions import SessionManager
from pibot.utils import Stopwatch

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """
    Outcome of one chat turn.

    Attributes
    ----------
    reply_text:
        Assistant text as stored in the session.
    model:
        Model id reported by the backend.
    backend:
        Which backend family served the turn.
    session_id:
        Identity of the session the turn was appended to.
    usage:
        Token usage if the backend reported it.
    """
    reply_text: str
    model: str
    backend: BackendKind
    session_id: str
    usage: Optional[ChatUsage] = None


class ChatPipeline:
    def __init__(
        self,
        sessions: SessionManager,
        router: LLMRouter,
        *,
        default_model: str,
        system_prompt: Optional[str] = None,
        max_context_turns: int = DEFAULT_CONTEXT_TURNS,
    ) -> None:
        self.sessions = sessions
        self.router = router
        self.default_model = default_model
        self.system_prompt = system_prompt
        self.max_context_turns = max_context_turns

    async def handle_turn(
        self,
        author_id: str,
        channel_id: Optional[str],
        text: str,
    ) -> TurnResult:
        content = text.strip()
        if not content:
            raise ValueError("Message text must not be empty.")

        session = await self.sessions.get_or_create(
            author_id, channel_id, self.default_model
        )
        await self.sessions.append_turn(author_id, channel_id, "user", content)

        context = build_context(
            session,
            self.max_context_turns,
            self.system_prompt,
        )
        model = session.model or self.default_model
        backend = self.router.resolve(model)

        with Stopwatch(f"{backend.kind.value} chat ({model})", logger):
            result = await backend.chat(context, model)

        await self.sessions.append_turn(
            author_id, channel_id, "assistant", result.content
        )

        usage = result.usage
        logger.info(
            "[Chat] session=%s | Model: %s | Backend: %s | Tokens: %sin/%sout",
            session.id,
            result.model,
            backend.kind.value,
            usage.input_tokens if usage else "?",
            usage.output_tokens if usage else "?",
        )

        return TurnResult(
            reply_text=result.content,
            model=result.model,
            backend=backend.kind,
            session_id=session.id,
            usage=usage,
        )
