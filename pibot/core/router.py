# pibot/core/router.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Backend router
-----------------------------
Decides which backend serves a model id, then delegates the chat call.

Resolution is an ordered list of rules. Each rule either returns a backend,
returns None ("not my case, ask the next rule") or raises
ConfigurationError ("this is my case, but the backend is missing"):

    1) resolve_from_registry      explicit registry entry wins
    2) resolve_from_cloud_prefix  "claude*" ids belong to the cloud backend
    3) resolve_local_catch_all    any other id goes to the local backend
    4) resolve_cloud_last_resort  ... or to the cloud one if no local backend

If every rule passes, NoProviderAvailableError is raised.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Tuple

from pibot.core.errors import ConfigurationError, NoProviderAvailableError
from pibot.core.model_registry import ModelRegistry
from pibot.core.types import BackendKind, ChatResult, Turn
from pibot.providers.base import BackendSet, ChatBackend

logger = logging.getLogger(__name__)

CLOUD_MODEL_PREFIXES: Tuple[str, ...] = ("claude",)

_CONFIG_HINTS = {
    BackendKind.CLOUD: "Set ANTHROPIC_API_KEY.",
    BackendKind.LOCAL: "Set OLLAMA_ENABLED=true.",
}

ResolutionRule = Callable[[str, ModelRegistry, BackendSet], Optional[ChatBackend]]


def _require(backends: BackendSet, kind: BackendKind) -> ChatBackend:
    backend = backends.get(kind)
    if backend is None:
        raise ConfigurationError(
            f"{kind.display_name} provider ({kind.value}) is not configured. "
            f"{_CONFIG_HINTS[kind]}",
            backend=kind,
        )
    return backend


# ---------------------------------------------------------------------------
# Rules (in precedence order)
# ---------------------------------------------------------------------------


def resolve_from_registry(
    model: str, registry: ModelRegistry, backends: BackendSet
) -> Optional[ChatBackend]:
    descriptor = registry.lookup(model)
    if descriptor is None:
        return None
    return _require(backends, descriptor.backend)


def resolve_from_cloud_prefix(
    model: str, registry: ModelRegistry, backends: BackendSet
) -> Optional[ChatBackend]:
    if not model.startswith(CLOUD_MODEL_PREFIXES):
        return None
    return _require(backends, BackendKind.CLOUD)


def resolve_local_catch_all(
    model: str, registry: ModelRegistry, backends: BackendSet
) -> Optional[ChatBackend]:
    return backends.local


def resolve_cloud_last_resort(
    model: str, registry: ModelRegistry, backends: BackendSet
) -> Optional[ChatBackend]:
    return backends.cloud


DEFAULT_RULES: Tuple[ResolutionRule, ...] = (
    resolve_from_registry,
    resolve_from_cloud_prefix,
    resolve_local_catch_all,
    resolve_cloud_last_resort,
)


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class LLMRouter:
    """
    Picks a backend per model id and forwards chat calls to it.

    Backend errors propagate unchanged; the router never retries and never
    falls over to another backend once one has been resolved.
    """

    def __init__(
        self,
        backends: BackendSet,
        registry: ModelRegistry,
        rules: Sequence[ResolutionRule] = DEFAULT_RULES,
    ) -> None:
        self.backends = backends
        self.registry = registry
        self.rules = tuple(rules)

    def resolve(self, model: str) -> ChatBackend:
        for rule in self.rules:
            backend = rule(model, self.registry, self.backends)
            if backend is not None:
                logger.debug(
                    "Model %s resolved by %s -> %s",
                    model,
                    getattr(rule, "__name__", rule),
                    backend.kind.value,
                )
                return backend
        raise NoProviderAvailableError(model)

    async def chat(self, turns: Sequence[Turn], model: str) -> ChatResult:
        backend = self.resolve(model)
        return await backend.chat(turns, model)
