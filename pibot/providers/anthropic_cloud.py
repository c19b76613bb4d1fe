# pibot/providers/anthropic_cloud.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Cloud backend (Anthropic Messages API)
-----------------------------------------------------
This module is the ONLY place that knows how to talk to Anthropic.

Responsibilities:
- Build the HTTP request (URL, headers, JSON payload).
- Split system turns out into the `system` field.
- Pick max_tokens per model from the model registry.
- Parse the response into a ChatResult (text + token usage).

Any failure (HTTP, JSON, payload shape) is raised as BackendError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from pibot.core.errors import BackendError
from pibot.core.model_registry import ModelRegistry
from pibot.core.types import BackendKind, ChatResult, ChatUsage, Turn

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096


def build_anthropic_payload(
    turns: Sequence[Turn],
    model: str,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> Dict[str, Any]:
    """
    Build the JSON payload for POST /v1/messages.

    Notes
    -----
    - Anthropic takes the system prompt as a top-level `system` string, not
      as a message. All system turns are joined with a blank line.
    - Remaining user/assistant turns keep their order.
    """
    system_parts = [t.content for t in turns if t.role == "system" and t.content]
    messages: List[Dict[str, str]] = [
        {"role": t.role, "content": t.content} for t in turns if t.role != "system"
    ]

    payload: Dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens,
        "messages": messages,
    }
    if system_parts:
        payload["system"] = "\n\n".join(system_parts)
    return payload


def parse_anthropic_response(data: Any, requested_model: str) -> ChatResult:
    """Turn a /v1/messages JSON body into a ChatResult."""
    if not isinstance(data, dict):
        raise BackendError(
            "Anthropic response is not a JSON object.", backend=BackendKind.CLOUD
        )

    blocks = data.get("content")
    if not isinstance(blocks, list):
        raise BackendError(
            "Anthropic response JSON missing content blocks.",
            backend=BackendKind.CLOUD,
        )

    text = "".join(
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text"
    )

    usage: Optional[ChatUsage] = None
    raw_usage = data.get("usage")
    if isinstance(raw_usage, dict):
        usage = ChatUsage(
            input_tokens=int(raw_usage.get("input_tokens") or 0),
            output_tokens=int(raw_usage.get("output_tokens") or 0),
        )

    return ChatResult(
        content=text,
        model=str(data.get("model") or requested_model),
        usage=usage,
    )


class AnthropicBackend:
    """
    Cloud backend.

    Parameters
    ----------
    api_key:
        Anthropic API key (env: ANTHROPIC_API_KEY).
    registry:
        Used to look up per-model max output tokens. Optional.
    base_url / api_version / timeout_s:
        HTTP settings; defaults match the public API.
    """

    kind = BackendKind.CLOUD

    def __init__(
        self,
        api_key: str,
        *,
        registry: Optional[ModelRegistry] = None,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout_s: float = 60.0,
    ) -> None:
        if not api_key:
            raise ValueError("AnthropicBackend requires an API key.")
        self.api_key = api_key
        self.registry = registry
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout_s = timeout_s

    def __repr__(self) -> str:
        return f"AnthropicBackend(base_url={self.base_url!r})"

    def _max_tokens_for(self, model: str) -> int:
        if self.registry is None:
            return DEFAULT_MAX_TOKENS
        descriptor = self.registry.lookup(model)
        return descriptor.max_tokens if descriptor else DEFAULT_MAX_TOKENS

    def _post_messages(self, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/v1/messages"
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }

        try:
            resp = requests.post(
                url,
                headers=headers,
                json=payload,
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise BackendError(
                f"Anthropic HTTP error: {exc}", backend=BackendKind.CLOUD
            ) from exc

        if resp.status_code != 200:
            text_preview = resp.text[:200].replace("\n", " ")
            raise BackendError(
                f"Anthropic API error ({resp.status_code}): {text_preview}",
                backend=BackendKind.CLOUD,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(
                "Anthropic returned non-JSON response.", backend=BackendKind.CLOUD
            ) from exc

    async def chat(self, turns: Sequence[Turn], model: str) -> ChatResult:
        payload = build_anthropic_payload(turns, model, self._max_tokens_for(model))
        logger.debug(
            "Anthropic chat: model=%s messages=%d", model, len(payload["messages"])
        )
        data = await asyncio.to_thread(self._post_messages, payload)
        return parse_anthropic_response(data, model)
