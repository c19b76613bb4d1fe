# pibot/providers/base.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Backend capability interface
-------------------------------------------
Every backend exposes exactly one operation to the core:

    await backend.chat(turns, model) -> ChatResult

and raises BackendError when the call fails. `kind` tags the backend with
one of the BackendKind variants so the router can match it against
registry entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from pibot.core.types import BackendKind, ChatResult, Turn


@runtime_checkable
class ChatBackend(Protocol):
    kind: BackendKind

    async def chat(self, turns: Sequence[Turn], model: str) -> ChatResult:
        ...


@dataclass
class BackendSet:
    """
    The configured backends. None means "not configured", which the router
    reports as a ConfigurationError; a configured backend that cannot be
    reached fails later with BackendError.
    """

    cloud: Optional[ChatBackend] = None
    local: Optional[ChatBackend] = None

    def get(self, kind: BackendKind) -> Optional[ChatBackend]:
        if kind == BackendKind.CLOUD:
            return self.cloud
        if kind == BackendKind.LOCAL:
            return self.local
        raise ValueError(f"Unknown backend kind: {kind!r}")

    def configured(self) -> List[BackendKind]:
        return [kind for kind in BackendKind if self.get(kind) is not None]
