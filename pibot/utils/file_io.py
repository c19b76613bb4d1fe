# pibot/utils/file_io.py
# -*- coding: utf-8 -*-
"""
PiBot Server - file_io utilities
--------------------------------
Small blocking helpers for the files the server owns:

- append-only JSONL logs (one record per line, flushed + fsynced)
- raw line reads with byte offsets for log replay and tail repair
- tolerant text reads for optional prompt files

These helpers are synchronous on purpose. Async callers run them through
`asyncio.to_thread` so the event loop is never blocked on disk.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """Create `path` (and parents) if needed and return it."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("ensure_dir: failed to create %s: %s", path, exc)
        raise
    return path


def append_line(path: Path, line: str) -> None:
    """
    Append one newline-terminated line to `path`.

    If the file does not end with a newline (a torn write), one is written
    first so the new record always starts on its own line. The write is
    flushed and fsynced before returning. Errors are logged and re-raised.
    """
    if "\n" in line:
        raise ValueError("append_line expects a single line without newlines")

    data = (line + "\n").encode("utf-8")
    try:
        with path.open("a+b") as fh:
            if fh.seek(0, os.SEEK_END) > 0:
                fh.seek(-1, os.SEEK_END)
                if fh.read(1) != b"\n":
                    data = b"\n" + data
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as exc:
        logger.error("append_line: failed to write %s: %s", path, exc)
        raise


def read_raw_lines(path: Path) -> List[Tuple[int, bytes]]:
    """
    Return `(offset, line)` for every non-blank line of `path`, in order.

    Lines are left undecoded so a torn multi-byte character only affects
    its own line. `offset` is the byte position where the line starts.
    Raises FileNotFoundError if the file does not exist so callers can tell
    "no record yet" apart from a real I/O failure.
    """
    data = path.read_bytes()
    lines: List[Tuple[int, bytes]] = []
    offset = 0
    for chunk in data.split(b"\n"):
        if chunk.strip():
            lines.append((offset, chunk))
        offset += len(chunk) + 1
    return lines


def truncate_file(path: Path, size: int) -> None:
    """Cut `path` down to `size` bytes and fsync it."""
    try:
        with path.open("r+b") as fh:
            fh.truncate(size)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError as exc:
        logger.error("truncate_file: failed to truncate %s: %s", path, exc)
        raise


def remove_file(path: Path) -> bool:
    """
    Delete `path`. Returns False if it did not exist, True if it was removed.

    Any other OSError propagates.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def read_text_safely(
    path: Path,
    default: Optional[str] = None,
    *,
    strip: bool = False,
) -> Optional[str]:
    """
    Read a UTF-8 text file and return its content.

    - On failure, logs and returns `default`.
    - If strip=True, leading/trailing whitespace is removed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("read_text_safely: failed to read %s: %s", path, exc)
        return default

    return text.strip() if strip else text
