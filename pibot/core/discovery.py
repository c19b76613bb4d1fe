# pibot/core/discovery.py
# -*- coding: utf-8 -*-
"""
Local model discovery.

Probes the local backend and, if it answers, replaces the registry's
dynamic table with the models it reports. An unreachable backend leaves the
table as it was.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pibot.core.errors import BackendError
from pibot.core.model_registry import ModelRegistry
from pibot.providers.ollama_local import OllamaBackend

logger = logging.getLogger(__name__)


async def refresh_local_models(
    registry: ModelRegistry,
    local_backend: Optional[OllamaBackend],
) -> Optional[List[str]]:
    """
    Run one discovery pass.

    Returns the ids now in the dynamic table, or None when the pass was
    skipped (no local backend, or it is unreachable).
    """
    if local_backend is None:
        logger.debug("Model discovery skipped: no local backend configured.")
        return None

    if not await local_backend.is_available():
        logger.warning(
            "Model discovery skipped: %r is not reachable.", local_backend
        )
        return None

    try:
        names = await local_backend.list_models()
    except BackendError as exc:
        logger.warning("Model discovery failed: %s", exc)
        return None

    ids = registry.replace_dynamic(names)
    logger.info("Discovered %d local models: %s", len(ids), ", ".join(ids) or "-")
    return ids
