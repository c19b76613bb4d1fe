import argparse
import importlib.util
import json
from pathlib import Path

CLIENT_PATH = Path(__file__).resolve().parents[1] / "tools" / "dev" / "ws_chat_client.py"


def _load_client():
    spec = importlib.util.spec_from_file_location("ws_chat_client", CLIENT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_payload_includes_channel_only_when_given():
    client = _load_client()

    with_channel = client.build_payload(
        "hi", argparse.Namespace(author="42", channel="7")
    )
    direct = client.build_payload("hi", argparse.Namespace(author="42", channel=None))

    assert with_channel == {"author_id": "42", "channel_id": "7", "text": "hi"}
    assert direct == {"author_id": "42", "text": "hi"}


def test_print_reply_formats_response_and_errors(capsys):
    client = _load_client()

    client.print_reply(
        json.dumps(
            {
                "reply_text": "Hello!",
                "model": "llama3.2:latest",
                "backend": "local",
                "usage": {"input_tokens": 3, "output_tokens": 5},
            }
        )
    )
    client.print_reply(json.dumps({"type": "error", "code": "backend_error", "message": "down"}))
    client.print_reply("not json")

    out = capsys.readouterr().out
    assert "PiBot: Hello!" in out
    assert "3in/5out" in out
    assert "backend_error - down" in out
    assert "Raw response (not JSON): not json" in out
