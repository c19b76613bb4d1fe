# pibot/core/model_registry.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Model registry
-----------------------------
Maps a model id to a ModelDescriptor (owning backend + capacity limits).

Two tables:

- static  : known cloud models, fixed at import time (STATIC_MODELS)
- dynamic : models discovered on the local backend; replaced as a whole on
            every discovery pass, never edited in place

The dynamic table is swapped with a single reference assignment of a
read-only mapping, so a reader always sees either the previous table or
the new one in full. Writes assume a single writer (the discovery pass).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pibot.core.types import BackendKind

logger = logging.getLogger(__name__)

# Conservative limits for models we only know by name.
DYNAMIC_MAX_TOKENS = 4096
DYNAMIC_CONTEXT_WINDOW = 8192


@dataclass(frozen=True)
class ModelDescriptor:
    """Metadata for one model id."""

    id: str
    name: str
    backend: BackendKind
    max_tokens: int
    context_window: int

    def to_json_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "backend": self.backend.value,
            "max_tokens": self.max_tokens,
            "context_window": self.context_window,
        }


STATIC_MODELS: Sequence[ModelDescriptor] = (
    ModelDescriptor(
        id="claude-sonnet-4-20250514",
        name="Claude Sonnet 4",
        backend=BackendKind.CLOUD,
        max_tokens=8192,
        context_window=200_000,
    ),
    ModelDescriptor(
        id="claude-3-5-sonnet-20241022",
        name="Claude 3.5 Sonnet",
        backend=BackendKind.CLOUD,
        max_tokens=8192,
        context_window=200_000,
    ),
    ModelDescriptor(
        id="claude-3-5-haiku-20241022",
        name="Claude 3.5 Haiku",
        backend=BackendKind.CLOUD,
        max_tokens=8192,
        context_window=200_000,
    ),
    ModelDescriptor(
        id="claude-3-opus-20240229",
        name="Claude 3 Opus",
        backend=BackendKind.CLOUD,
        max_tokens=4096,
        context_window=200_000,
    ),
)


class ModelRegistry:
    """
    Static + dynamic model catalog.

    Parameters
    ----------
    static_models:
        Descriptors for the fixed table. Defaults to STATIC_MODELS.
    """

    def __init__(self, static_models: Optional[Iterable[ModelDescriptor]] = None) -> None:
        models = STATIC_MODELS if static_models is None else tuple(static_models)
        self._static: Mapping[str, ModelDescriptor] = MappingProxyType(
            {m.id: m for m in models}
        )
        self._dynamic: Mapping[str, ModelDescriptor] = MappingProxyType({})

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup(self, model_id: str) -> Optional[ModelDescriptor]:
        """Return the descriptor for `model_id` (static first), or None."""
        found = self._static.get(model_id)
        if found is not None:
            return found
        return self._dynamic.get(model_id)

    def all_models(self) -> List[ModelDescriptor]:
        """Static models first (declaration order), then dynamic ones."""
        dynamic = self._dynamic
        return [*self._static.values(), *dynamic.values()]

    def list_by_backend(self, backend: BackendKind) -> List[ModelDescriptor]:
        return [m for m in self.all_models() if m.backend == backend]

    def dynamic_ids(self) -> List[str]:
        return list(self._dynamic.keys())

    def find(self, query: str) -> Optional[ModelDescriptor]:
        """
        Resolve a user-typed model reference.

        Exact id match wins; otherwise a case-insensitive display name match.
        """
        query = query.strip()
        exact = self.lookup(query)
        if exact is not None:
            return exact

        lowered = query.lower()
        for model in self.all_models():
            if model.name.lower() == lowered:
                return model
        return None

    # ------------------------------------------------------------------
    # Dynamic table
    # ------------------------------------------------------------------

    def replace_dynamic(
        self,
        model_ids: Iterable[str],
        backend: BackendKind = BackendKind.LOCAL,
    ) -> List[str]:
        """
        Replace every dynamic descriptor with one per id in `model_ids`.

        Ids already present in the static table are skipped. Returns the ids
        that ended up in the new dynamic table.
        """
        fresh: Dict[str, ModelDescriptor] = {}
        for model_id in model_ids:
            if not model_id or model_id in self._static or model_id in fresh:
                continue
            fresh[model_id] = ModelDescriptor(
                id=model_id,
                name=model_id,
                backend=backend,
                max_tokens=DYNAMIC_MAX_TOKENS,
                context_window=DYNAMIC_CONTEXT_WINDOW,
            )

        self._dynamic = MappingProxyType(fresh)
        logger.info("Dynamic model table replaced (%d models)", len(fresh))
        return list(fresh.keys())
