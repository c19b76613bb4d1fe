# pibot/routers/status.py
# -*- coding: utf-8 -*-
"""
PiBot Server - /models and /status router
-----------------------------------------
Read-only views for operators:

- GET  /models          all registered models (static + discovered)
- POST /models/refresh  run one local discovery pass now
- GET  /status          backends configured, cache size, discovery state
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from pibot.core.services import Services, get_services
from pibot.core.types import BackendKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


@router.get("/models", summary="Available models")
async def list_models(
    backend: Optional[BackendKind] = Query(default=None),
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    registry = services.registry
    models = registry.all_models() if backend is None else registry.list_by_backend(backend)
    return [m.to_json_dict() for m in models]


@router.post("/models/refresh", summary="Rediscover local models")
async def refresh_models(
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    discovered = await services.refresh_models()
    return {
        "refreshed": discovered is not None,
        "dynamic_models": services.registry.dynamic_ids(),
    }


@router.get("/status", summary="Server status snapshot")
async def get_status(
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    cfg = services.settings
    return {
        "app_name": cfg.app_name,
        "environment": cfg.environment,
        "default_model": cfg.default_model,
        "backends": {
            kind.value: services.backends.get(kind) is not None for kind in BackendKind
        },
        "ollama_base_url": cfg.ollama_base_url if cfg.ollama_enabled else None,
        "cached_sessions": services.sessions.cached_count(),
        "dynamic_models": services.registry.dynamic_ids(),
        "max_context_turns": cfg.max_context_turns,
    }
