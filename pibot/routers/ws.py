# pibot/routers/ws.py
# -*- coding: utf-8 -*-
"""
PiBot Server - WebSocket router
-------------------------------
/ws/chat: persistent chat over one WebSocket, using the same pipeline as
POST /chat (ChatRequest frame in -> ChatResponse frame out).

Design goals
------------
- Keep the protocol simple and JSON-based.
- Re-use the Pydantic request/response models + pipeline.
- Never crash the server on bad input: malformed frames and core errors
  become {"type": "error", ...} frames and the connection stays open.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from pibot.core.errors import PiBotError, error_code
from pibot.core.services import Services
from pibot.models.chat_request import ChatRequest
from pibot.models.chat_response import ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _send_error(
    websocket: WebSocket,
    code: str,
    message: str,
    details: Any | None = None,
) -> None:
    """Send a structured error frame to the client."""
    payload: Dict[str, Any] = {
        "type": "error",
        "code": code,
        "message": message,
    }
    if details is not None:
        payload["details"] = details
    try:
        await websocket.send_json(payload)
    except Exception:  # noqa: BLE001
        # If we can't even send the error, just ignore.
        logger.debug("Failed to send error frame over WebSocket", exc_info=True)


# ---------------------------------------------------------------------------
# /ws/chat
# ---------------------------------------------------------------------------


@router.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for chat.

    - Accepts ChatRequest-shaped JSON frames from the client.
    - Runs ChatPipeline.handle_turn.
    - Sends back ChatResponse-shaped JSON frames.

    Non-streaming: one request frame -> one response frame.
    """
    services: Services = websocket.app.state.services
    await websocket.accept()
    logger.info("WebSocket /ws/chat connected")

    try:
        while True:
            raw = await websocket.receive_json()
            logger.debug("WS /ws/chat received: %r", raw)

            try:
                chat_req = ChatRequest.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Invalid ChatRequest over WS: %s", exc)
                await _send_error(
                    websocket,
                    code="invalid_chat_request",
                    message="Payload does not match ChatRequest schema.",
                    details=exc.errors(include_url=False, include_context=False),
                )
                # Keep connection open; allow client to retry.
                continue

            try:
                result = await services.pipeline.handle_turn(
                    chat_req.author_id, chat_req.channel_id, chat_req.text
                )
            except PiBotError as exc:
                logger.warning("WS /ws/chat turn failed: %s", exc)
                await _send_error(
                    websocket,
                    code=error_code(exc),
                    message=str(exc),
                )
                continue

            payload = ChatResponse.from_result(result).model_dump(
                mode="json", exclude_none=True
            )
            await websocket.send_json(payload)

    except WebSocketDisconnect:
        logger.info("WebSocket /ws/chat disconnected")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error in WS /ws/chat: %s", exc)
        try:
            await websocket.close(code=1011)
        except Exception:  # noqa: BLE001
            pass
