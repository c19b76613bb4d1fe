# pibot/core/identity.py
# -*- coding: utf-8 -*-
"""
Session identity scheme.

    session_identity("U")       -> "U"
    session_identity("U", "C")  -> "U-C"

Each component is escaped before joining so that the separator can only
ever appear between author and channel. Numeric platform ids need no
escaping and keep the plain "author-channel" form.
"""

from __future__ import annotations

from typing import Optional

SEPARATOR = "-"

# "%" first so escapes are never double-encoded.
_ESCAPES = (
    ("%", "%25"),
    ("-", "%2D"),
    ("/", "%2F"),
    ("\\", "%5C"),
)


def _escape(component: str) -> str:
    for raw, encoded in _ESCAPES:
        component = component.replace(raw, encoded)
    return component


def session_identity(author_id: str, channel_id: Optional[str] = None) -> str:
    """Derive the durable session identity for (author, channel)."""
    author = _escape(str(author_id))
    if channel_id is None:
        return author
    return f"{author}{SEPARATOR}{_escape(str(channel_id))}"
