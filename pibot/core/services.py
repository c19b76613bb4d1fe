# pibot/core/services.py
# -*- coding: utf-8 -*-
"""
Service wiring: builds the object graph (registry, backends, router, log
store, session manager, pipeline) from a Settings instance.

One `Services` object is created per app and stored on `app.state`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from pibot.core.config import Settings
from pibot.core.discovery import refresh_local_models
from pibot.core.model_registry import ModelRegistry
from pibot.core.pipeline import ChatPipeline
from pibot.core.router import LLMRouter
from pibot.providers.anthropic_cloud import AnthropicBackend
from pibot.providers.base import BackendSet
from pibot.providers.ollama_local import OllamaBackend
from pibot.runtime_state import SessionLogStore, SessionManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    registry: ModelRegistry
    backends: BackendSet
    router: LLMRouter
    sessions: SessionManager
    pipeline: ChatPipeline

    async def startup(self) -> None:
        await self.sessions.initialize()
        if self.settings.ollama_discovery_on_startup:
            await self.refresh_models()

    async def refresh_models(self):
        local = self.backends.local
        if not isinstance(local, OllamaBackend):
            return None
        return await refresh_local_models(self.registry, local)


def build_backends(cfg: Settings, registry: ModelRegistry) -> BackendSet:
    cloud = None
    if cfg.cloud_configured:
        cloud = AnthropicBackend(
            cfg.anthropic_api_key or "",
            registry=registry,
            base_url=cfg.anthropic_base_url,
            api_version=cfg.anthropic_version,
            timeout_s=cfg.anthropic_timeout_s,
        )

    local = None
    if cfg.ollama_enabled:
        local = OllamaBackend(cfg.ollama_base_url, timeout_s=cfg.ollama_timeout_s)

    return BackendSet(cloud=cloud, local=local)


def build_services(
    cfg: Settings,
    *,
    backends: Optional[BackendSet] = None,
    registry: Optional[ModelRegistry] = None,
) -> Services:
    registry = registry or ModelRegistry()
    if backends is None:
        backends = build_backends(cfg, registry)

    router = LLMRouter(backends, registry)
    sessions = SessionManager(SessionLogStore(cfg.resolved_sessions_dir))
    pipeline = ChatPipeline(
        sessions,
        router,
        default_model=cfg.default_model,
        system_prompt=cfg.load_system_prompt(),
        max_context_turns=cfg.max_context_turns,
    )

    logger.info(
        "Services built (backends=%s, sessions_dir=%s, default_model=%s)",
        [k.value for k in backends.configured()],
        cfg.resolved_sessions_dir,
        cfg.default_model,
    )
    return Services(
        settings=cfg,
        registry=registry,
        backends=backends,
        router=router,
        sessions=sessions,
        pipeline=pipeline,
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency: the Services object built by create_app()."""
    return request.app.state.services
