import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

# Keep the import-time default app away from a developer's real .env values.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("OLLAMA_DISCOVERY_ON_STARTUP", "false")

from pibot.core.config import Settings
from pibot.core.errors import BackendError
from pibot.core.model_registry import ModelRegistry
from pibot.core.types import BackendKind, ChatResult, ChatUsage, Turn
from pibot.runtime_state import SessionLogStore, SessionManager


class FakeBackend:
    """Records every call and answers with a canned reply."""

    def __init__(
        self,
        kind: BackendKind,
        reply: str = "ok",
        *,
        usage: Optional[ChatUsage] = ChatUsage(input_tokens=3, output_tokens=5),
        error: Optional[Exception] = None,
    ) -> None:
        self.kind = kind
        self.reply = reply
        self.usage = usage
        self.error = error
        self.calls: List[Tuple[List[Turn], str]] = []

    async def chat(self, turns: Sequence[Turn], model: str) -> ChatResult:
        self.calls.append((list(turns), model))
        if self.error is not None:
            raise self.error
        return ChatResult(content=self.reply, model=model, usage=self.usage)


@pytest.fixture
def cloud_backend() -> FakeBackend:
    return FakeBackend(BackendKind.CLOUD, reply="from cloud")


@pytest.fixture
def local_backend() -> FakeBackend:
    return FakeBackend(BackendKind.LOCAL, reply="from local")


@pytest.fixture
def failing_backend() -> FakeBackend:
    return FakeBackend(
        BackendKind.LOCAL,
        error=BackendError("Ollama HTTP error: connection refused", backend=BackendKind.LOCAL),
    )


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry()


@pytest.fixture
def sessions_dir(tmp_path: Path) -> Path:
    return tmp_path / "sessions"


@pytest.fixture
def store(sessions_dir: Path) -> SessionLogStore:
    return SessionLogStore(sessions_dir)


@pytest.fixture
def manager(store: SessionLogStore) -> SessionManager:
    return SessionManager(store)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        data_dir=tmp_path / "data",
        anthropic_api_key=None,
        ollama_enabled=True,
        ollama_discovery_on_startup=False,
        default_model="llama3.2:latest",
        system_prompt="You are a test bot.",
        max_context_turns=4,
    )
