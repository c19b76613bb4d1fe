import asyncio

from pibot.core.discovery import refresh_local_models
from pibot.core.errors import BackendError
from pibot.core.types import BackendKind
from pibot.providers.ollama_local import OllamaBackend


class StubOllama(OllamaBackend):
    """OllamaBackend with canned discovery answers instead of HTTP."""

    def __init__(self, models=None, *, available=True, list_error=None):
        super().__init__("http://ollama.invalid:11434")
        self.models = list(models or [])
        self.available = available
        self.list_error = list_error

    async def is_available(self):
        return self.available

    async def list_models(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.models)


def test_discovery_fills_dynamic_table(registry):
    ids = asyncio.run(
        refresh_local_models(registry, StubOllama(["llama3.2:latest", "mistral:7b"]))
    )

    assert ids == ["llama3.2:latest", "mistral:7b"]
    assert registry.lookup("mistral:7b").backend == BackendKind.LOCAL


def test_unreachable_backend_leaves_table_unchanged(registry):
    registry.replace_dynamic(["x", "y"])

    result = asyncio.run(refresh_local_models(registry, StubOllama(available=False)))

    assert result is None
    assert registry.dynamic_ids() == ["x", "y"]


def test_listing_failure_leaves_table_unchanged(registry):
    registry.replace_dynamic(["x"])
    backend = StubOllama(list_error=BackendError("boom", backend=BackendKind.LOCAL))

    assert asyncio.run(refresh_local_models(registry, backend)) is None
    assert registry.dynamic_ids() == ["x"]


def test_no_local_backend_is_skipped(registry):
    assert asyncio.run(refresh_local_models(registry, None)) is None
    assert registry.dynamic_ids() == []


def test_second_pass_replaces_first(registry):
    asyncio.run(refresh_local_models(registry, StubOllama(["x", "y"])))
    asyncio.run(refresh_local_models(registry, StubOllama(["z"])))

    assert registry.dynamic_ids() == ["z"]
    assert registry.lookup("x") is None
