# pibot/routers/sessions.py
# -*- coding: utf-8 -*-
"""
PiBot Server - /sessions router
-------------------------------
Conversation management, mirroring the bot's chat commands:

    POST /sessions/clear    -> forget history (cache + log)
    PUT  /sessions/model    -> switch model by id or display name
    GET  /sessions/history  -> current turns + selected model
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from pibot.core.errors import UnknownModelError
from pibot.core.services import Services, get_services
from pibot.models.chat_request import ModelSwitchRequest, SessionRef
from pibot.models.chat_response import SessionView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/clear", summary="Clear conversation history")
async def clear_session(
    body: SessionRef,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    await services.sessions.clear(body.author_id, body.channel_id)
    return {"cleared": True, "author_id": body.author_id, "channel_id": body.channel_id}


@router.put("/model", summary="Switch the model of a conversation")
async def switch_model(
    body: ModelSwitchRequest,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """
    Accepts a model id or its display name. Only registered models (static
    or discovered) can be selected.
    """
    descriptor = services.registry.find(body.model)
    if descriptor is None:
        raise UnknownModelError(body.model)

    session = await services.sessions.set_model(
        body.author_id, body.channel_id, descriptor.id
    )
    return {
        "session_id": session.id,
        "model": descriptor.to_json_dict(),
    }


@router.get("/history", response_model=SessionView, summary="Conversation history")
async def session_history(
    author_id: str = Query(..., min_length=1),
    channel_id: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=0),
    services: Services = Depends(get_services),
) -> SessionView:
    """Read-only: an unknown conversation is not created or cached."""
    session = await services.sessions.snapshot(
        author_id, channel_id, services.settings.default_model
    )
    return SessionView.from_session(session, limit=limit)
