# pibot/providers/ollama_local.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Local backend (Ollama)
-------------------------------------
Talks to an Ollama server over its OpenAI-compatible chat endpoint and
its native /api/tags listing (used for model discovery).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from pibot.core.errors import BackendError
from pibot.core.types import BackendKind, ChatResult, ChatUsage, Turn

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
PROBE_TIMEOUT_S = 3.0


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def build_ollama_payload(turns: Sequence[Turn], model: str) -> Dict[str, Any]:
    """
    OpenAI-compatible chat payload. Ollama understands system/user/assistant
    roles natively, so turns are passed through in order.
    """
    return {
        "model": model,
        "messages": [{"role": t.role, "content": t.content} for t in turns],
        "stream": False,
    }


def parse_ollama_response(data: Any, requested_model: str) -> ChatResult:
    """
    Parse a /v1/chat/completions (stream=false) body:

        {
          "model": "...",
          "choices": [{"message": {"role": "assistant", "content": "..."}}],
          "usage": {"prompt_tokens": 12, "completion_tokens": 34}
        }

    `usage` is optional.
    """
    if not isinstance(data, dict):
        raise BackendError(
            "Ollama response is not a JSON object.", backend=BackendKind.LOCAL
        )

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise BackendError(
            "Ollama response JSON missing choices[0].message.content",
            backend=BackendKind.LOCAL,
        ) from exc

    usage: Optional[ChatUsage] = None
    raw_usage = data.get("usage")
    if isinstance(raw_usage, dict):
        usage = ChatUsage(
            input_tokens=int(raw_usage.get("prompt_tokens") or 0),
            output_tokens=int(raw_usage.get("completion_tokens") or 0),
        )

    return ChatResult(
        content=content if isinstance(content, str) else "",
        model=str(data.get("model") or requested_model),
        usage=usage,
    )


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

class OllamaBackend:
    """
    Local backend talking to an Ollama server over HTTP.

    Expected config (from pibot.core.config.Settings):
        settings.ollama_base_url   e.g. "http://localhost:11434"
        settings.ollama_timeout_s  e.g. 120.0

    Any model name is accepted; Ollama itself decides whether it exists.
    """

    kind = BackendKind.LOCAL

    def __init__(self, base_url: str = DEFAULT_BASE_URL, *, timeout_s: float = 120.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def __repr__(self) -> str:
        return f"OllamaBackend(base_url={self.base_url!r})"

    # -- chat ---------------------------------------------------------------

    def _post_chat(self, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/v1/chat/completions"
        try:
            resp = requests.post(url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise BackendError(
                f"Ollama HTTP error: {exc}", backend=BackendKind.LOCAL
            ) from exc

        if resp.status_code != 200:
            text_preview = resp.text[:200].replace("\n", " ")
            raise BackendError(
                f"Ollama API error ({resp.status_code}): {text_preview}",
                backend=BackendKind.LOCAL,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise BackendError(
                "Ollama returned non-JSON response.", backend=BackendKind.LOCAL
            ) from exc

    async def chat(self, turns: Sequence[Turn], model: str) -> ChatResult:
        payload = build_ollama_payload(turns, model)
        logger.debug("Ollama chat: model=%s messages=%d", model, len(turns))
        data = await asyncio.to_thread(self._post_chat, payload)
        return parse_ollama_response(data, model)

    # -- discovery ----------------------------------------------------------

    def _get_tags(self, timeout_s: float) -> Any:
        resp = requests.get(f"{self.base_url}/api/tags", timeout=timeout_s)
        resp.raise_for_status()
        return resp.json()

    async def is_available(self) -> bool:
        """True if the server answers GET /api/tags. Never raises."""
        try:
            await asyncio.to_thread(self._get_tags, PROBE_TIMEOUT_S)
        except (requests.RequestException, ValueError) as exc:
            logger.debug("Ollama probe failed: %s", exc)
            return False
        return True

    async def list_models(self) -> List[str]:
        """Names of the models installed on the Ollama server."""
        try:
            data = await asyncio.to_thread(self._get_tags, self.timeout_s)
        except requests.RequestException as exc:
            raise BackendError(
                f"Ollama model listing failed: {exc}", backend=BackendKind.LOCAL
            ) from exc
        except ValueError as exc:
            raise BackendError(
                "Ollama returned non-JSON model list.", backend=BackendKind.LOCAL
            ) from exc

        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            return []
        return [
            str(m["name"]) for m in models if isinstance(m, dict) and m.get("name")
        ]
