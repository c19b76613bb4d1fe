# pibot/routers/chat.py
# -*- coding: utf-8 -*-
"""
PiBot Server - /chat router
---------------------------
This router exposes the main HTTP endpoint that a chat-platform adapter
(Discord bot, CLI, ...) calls once per user message.

Flow:
  HTTP POST /chat  (ChatRequest JSON)
    -> ChatPipeline.handle_turn(author_id, channel_id, text)
       - hydrates or creates the session
       - appends the user turn (durable)
       - builds the bounded context with the system prompt
       - resolves the backend for the session's model and calls it
       - appends the assistant turn (durable)
    -> returns ChatResponse JSON (reply_text, model, backend, session_id, usage)

Core errors (not configured, no provider, backend failure, storage) are
mapped to HTTP status codes by the exception handlers in pibot.main.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from pibot.core.services import Services, get_services
from pibot.models.chat_request import ChatRequest
from pibot.models.chat_response import ChatResponse

# `tags` is just for docs (Swagger / ReDoc), makes it grouped nicely.
router = APIRouter(tags=["chat"])
logger = logging.getLogger(__name__)


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
)
async def chat_endpoint(
    request: ChatRequest,
    services: Services = Depends(get_services),
) -> ChatResponse:
    """
    Run one chat turn for (author_id, channel_id).

    - Input JSON is validated as ChatRequest by Pydantic (text must be
      non-empty after stripping).
    - The reply is already stored in the session when this returns.
    """
    logger.info(
        "[/chat] author=%s channel=%s text=%r",
        request.author_id,
        request.channel_id,
        request.text,
    )

    result = await services.pipeline.handle_turn(
        request.author_id, request.channel_id, request.text
    )
    return ChatResponse.from_result(result)
