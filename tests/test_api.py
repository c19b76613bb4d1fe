import pytest
from fastapi.testclient import TestClient

from pibot.core.config import Settings
from pibot.core.errors import ConfigurationError
from pibot.core.types import BackendKind
from pibot.main import create_app
from pibot.providers.base import BackendSet


@pytest.fixture
def client(test_settings, local_backend):
    app = create_app(test_settings, backends=BackendSet(local=local_backend))
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["backends"] == ["local"]


def test_chat_round_trip(client, local_backend):
    resp = client.post("/chat", json={"author_id": "42", "channel_id": "7", "text": "hi"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["reply_text"] == "from local"
    assert body["backend"] == "local"
    assert body["model"] == "llama3.2:latest"
    assert body["session_id"] == "42-7"
    assert body["usage"] == {"input_tokens": 3, "output_tokens": 5}

    sent, _ = local_backend.calls[0]
    assert sent[0].role == "system"
    assert sent[0].content == "You are a test bot."


def test_chat_rejects_blank_text(client):
    resp = client.post("/chat", json={"author_id": "42", "text": "   "})
    assert resp.status_code == 422


def test_history_and_clear(client):
    client.post("/chat", json={"author_id": "42", "text": "first"})
    client.post("/chat", json={"author_id": "42", "text": "second"})

    history = client.get("/sessions/history", params={"author_id": "42"}).json()
    assert history["turn_count"] == 4
    assert [t["content"] for t in history["turns"]] == [
        "first",
        "from local",
        "second",
        "from local",
    ]

    limited = client.get("/sessions/history", params={"author_id": "42", "limit": 1}).json()
    assert [t["content"] for t in limited["turns"]] == ["from local"]

    resp = client.post("/sessions/clear", json={"author_id": "42"})
    assert resp.status_code == 200
    assert resp.json()["cleared"] is True

    history = client.get("/sessions/history", params={"author_id": "42"}).json()
    assert history["turns"] == []


def test_switch_to_cloud_model_without_cloud_backend(client):
    resp = client.put(
        "/sessions/model",
        json={"author_id": "42", "channel_id": "7", "model": "Claude 3.5 Haiku"},
    )
    assert resp.status_code == 200
    assert resp.json()["model"]["id"] == "claude-3-5-haiku-20241022"

    resp = client.post("/chat", json={"author_id": "42", "channel_id": "7", "text": "hi"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "provider_not_configured"

    # The user turn was recorded before routing failed.
    history = client.get(
        "/sessions/history", params={"author_id": "42", "channel_id": "7"}
    ).json()
    assert history["model"] == "claude-3-5-haiku-20241022"
    assert [t["role"] for t in history["turns"]] == ["user"]


def test_switch_to_unknown_model_is_404(client):
    resp = client.put("/sessions/model", json={"author_id": "42", "model": "gpt-nope"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "unknown_model"


def test_backend_failure_is_502(test_settings, failing_backend):
    app = create_app(test_settings, backends=BackendSet(local=failing_backend))
    with TestClient(app) as client:
        resp = client.post("/chat", json={"author_id": "42", "text": "hi"})

    assert resp.status_code == 502
    assert resp.json()["error"] == "backend_error"


def test_models_and_status(client):
    models = client.get("/models").json()
    assert "claude-3-5-sonnet-20241022" in [m["id"] for m in models]

    local_models = client.get("/models", params={"backend": "local"}).json()
    assert local_models == []

    refresh = client.post("/models/refresh").json()
    assert refresh == {"refreshed": False, "dynamic_models": []}

    status = client.get("/status").json()
    assert status["backends"] == {"cloud": False, "local": True}
    assert status["default_model"] == "llama3.2:latest"
    assert status["max_context_turns"] == 4


def test_websocket_chat(client):
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_json({"author_id": "42", "channel_id": "7", "text": "hello"})
        reply = ws.receive_json()
        assert reply["reply_text"] == "from local"
        assert reply["backend"] == BackendKind.LOCAL.value

        ws.send_json({"author_id": "42"})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["code"] == "invalid_chat_request"

        # Connection stays usable after an error frame.
        ws.send_json({"author_id": "42", "channel_id": "7", "text": "again"})
        assert ws.receive_json()["session_id"] == "42-7"


def test_websocket_reports_core_errors(client):
    client.put("/sessions/model", json={"author_id": "9", "model": "claude-3-opus-20240229"})
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_json({"author_id": "9", "text": "hello"})
        error = ws.receive_json()
    assert error["code"] == "provider_not_configured"


def test_app_requires_a_backend(tmp_path):
    cfg = Settings(
        _env_file=None,
        data_dir=tmp_path,
        anthropic_api_key=None,
        ollama_enabled=False,
    )
    with pytest.raises(ConfigurationError):
        create_app(cfg)


def test_system_prompt_file_overrides_inline(tmp_path):
    prompt_file = tmp_path / "prompt.txt"
    prompt_file.write_text("  From a file.\n", encoding="utf-8")
    cfg = Settings(
        _env_file=None,
        data_dir=tmp_path,
        system_prompt="inline",
        system_prompt_path=prompt_file,
    )
    assert cfg.load_system_prompt() == "From a file."

    missing = Settings(
        _env_file=None,
        data_dir=tmp_path,
        system_prompt="inline",
        system_prompt_path=tmp_path / "missing.txt",
    )
    assert missing.load_system_prompt() == "inline"


def test_history_of_unknown_conversation_creates_nothing(client, test_settings):
    resp = client.get("/sessions/history", params={"author_id": "stranger"})

    assert resp.status_code == 200
    assert resp.json()["turns"] == []
    assert client.get("/status").json()["cached_sessions"] == 0
    assert not (test_settings.resolved_sessions_dir / "stranger.jsonl").exists()
