#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PiBot - Dev WebSocket Chat Client (/ws/chat)
--------------------------------------------
Interactive console tool for talking to the server over WebSocket.

Features:
- Simple REPL: you type, PiBot answers.
- Sends ChatRequest-shaped JSON ({author_id, channel_id?, text}) to /ws/chat.
- Reads ChatResponse-shaped JSON back and shows model / backend / tokens.
- Auto-reconnect when the connection drops (with backoff).
- If the connection drops after sending a message but before the reply
  arrives, the message is resent after reconnect.

The server keeps history per (author_id, channel_id), so reusing the same
ids across runs continues the same conversation.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed

DEFAULT_SERVER = "ws://127.0.0.1:8000/ws/chat"


# ---------------------------------------------------------------------------
# Custom exception to carry a "pending" message across reconnects
# ---------------------------------------------------------------------------


class PendingMessage(Exception):
    """
    Raised when the connection drops while we are waiting for a reply
    to a message that was already sent.

    The `payload` attribute holds the ChatRequest-shaped dict that
    should be resent after reconnect.
    """

    def __init__(self, payload: Dict[str, Any]) -> None:
        super().__init__("Connection lost with a pending message.")
        self.payload = payload


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="PiBot - Dev WebSocket Chat Client (/ws/chat)",
    )
    parser.add_argument(
        "--server",
        type=str,
        default=DEFAULT_SERVER,
        help=f"WebSocket server URL (default: {DEFAULT_SERVER})",
    )
    parser.add_argument(
        "--author",
        type=str,
        default="dev-console",
        help="author_id to send (default: dev-console).",
    )
    parser.add_argument(
        "--channel",
        type=str,
        default=None,
        help="Optional channel_id; omit for a direct-message style session.",
    )
    return parser.parse_args()


# ---------------------------------------------------------------------------
# Payload / display helpers
# ---------------------------------------------------------------------------


def build_payload(text: str, args: argparse.Namespace) -> Dict[str, Any]:
    """Build a ChatRequest-shaped dict."""
    payload: Dict[str, Any] = {
        "author_id": args.author,
        "text": text,
    }
    if args.channel:
        payload["channel_id"] = args.channel
    return payload


def print_reply(raw: str, label: str = "PiBot") -> None:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        print(f"Raw response (not JSON): {raw}")
        return

    if isinstance(data, dict) and data.get("type") == "error":
        print(f"Server error: {data.get('code')} - {data.get('message')}")
        details = data.get("details")
        if details:
            print(f"  details: {details}")
        print()
        return

    usage = data.get("usage") or {}
    print(f"\n{label}: {data.get('reply_text')}")
    print(
        f"  model = {data.get('model')}, backend = {data.get('backend')}, "
        f"tokens = {usage.get('input_tokens', '?')}in/{usage.get('output_tokens', '?')}out\n"
    )


# ---------------------------------------------------------------------------
# Core chat loop (for one connection)
# ---------------------------------------------------------------------------


async def run_single_session(
    args: argparse.Namespace,
    pending_payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Handles one connect -> chat -> disconnect cycle.

    If `pending_payload` is provided, it is resent right after connecting.
    If the connection drops after a payload was sent but before its reply
    arrived, PendingMessage(payload) is raised so the outer loop can
    reconnect and resend it.
    """
    print("Type a message and press Enter. Type /quit to exit.\n")
    print(f"[client] server  : {args.server}")
    print(f"[client] author  : {args.author}")
    print(f"[client] channel : {args.channel or '-'}")
    print()

    # ping_interval=None: backend calls can take a while on a Pi.
    async with websockets.connect(
        args.server,
        ping_interval=None,
        ping_timeout=None,
    ) as ws:
        print("Connected.\n")

        if pending_payload is not None:
            print("[client] Re-sending last unanswered message after reconnect...\n")
            await ws.send(json.dumps(pending_payload))
            try:
                raw = await ws.recv()
            except ConnectionClosed as exc:
                print("\nConnection dropped again while waiting for the pending reply.")
                raise PendingMessage(pending_payload) from exc
            print_reply(raw, label="PiBot (pending reply)")

        while True:
            try:
                text = input("You: ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\nBye.")
                raise KeyboardInterrupt

            if not text:
                continue
            if text.lower() in {"/quit", "/exit"}:
                print("Bye.")
                raise KeyboardInterrupt

            payload = build_payload(text, args)
            await ws.send(json.dumps(payload))

            try:
                raw = await ws.recv()
            except ConnectionClosed as exc:
                print(
                    "\nConnection dropped while waiting for reply. "
                    "Your last message will be resent after reconnect."
                )
                raise PendingMessage(payload) from exc

            print_reply(raw)


# ---------------------------------------------------------------------------
# Auto-reconnect wrapper
# ---------------------------------------------------------------------------


async def run_with_reconnect(args: argparse.Namespace) -> None:
    """
    Outer loop that auto-reconnects when the connection fails.

    Backoff: 3s, 6s, 9s, ... capped at 30s. Ctrl+C at any time to exit.
    """
    attempt = 0
    base_delay = 3  # seconds
    pending_payload: Optional[Dict[str, Any]] = None

    while True:
        attempt += 1
        try:
            print(f"Connecting to '{args.server}' (attempt {attempt}) ...")
            await run_single_session(args, pending_payload=pending_payload)
            return

        except KeyboardInterrupt:
            print("\nInterrupted. Bye.")
            return

        except PendingMessage as exc:
            pending_payload = exc.payload
            print(
                "\n[client] Connection closed with a pending message. "
                "Will resend it after reconnect."
            )

        except ConnectionClosed as exc:
            pending_payload = None
            print(f"\nConnection closed: {exc}")

        except OSError as exc:
            pending_payload = None
            print(f"\nConnection error: {exc}")

        delay = min(base_delay * attempt, 30)
        print(f"Reconnecting in {delay} seconds... (Ctrl+C to stop)")
        try:
            await asyncio.sleep(delay)
        except KeyboardInterrupt:
            print("\nInterrupted during backoff. Bye.")
            return


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    args = parse_args()
    try:
        asyncio.run(run_with_reconnect(args))
    except KeyboardInterrupt:
        print("\nBye.")
        sys.exit(0)


if __name__ == "__main__":
    main()
