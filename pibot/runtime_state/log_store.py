# pibot/runtime_state/log_store.py
# -*- coding: utf-8 -*-
"""
PiBot - Session log store
-------------------------

Durable, append-only record of every turn, one JSONL file per session:

    <sessions_dir>/<session_id>.jsonl

Design notes
~~~~~~~~~~~~
- One JSON object per line; each line parses on its own.
- Lines are only ever appended (flushed + fsynced). The one rewrite is
  cutting off a torn tail on load.
- A missing file means "no prior session" and is not an error.
- Lines are decoded one at a time. A corrupt LAST line (bad UTF-8 or bad
  JSON) is treated as a torn write from a crash: it is skipped with a
  warning and truncated away. A corrupt line anywhere else raises
  StorageError, because dropping it would silently reorder history.
- Blocking file I/O runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import ValidationError

from pibot.core.errors import StorageError
from pibot.core.types import Session, Turn
from pibot.utils import (
    append_line,
    ensure_dir,
    get_logger,
    read_raw_lines,
    remove_file,
    truncate_file,
)

logger = get_logger("pibot.runtime_state.log_store")

LOG_SUFFIX = ".jsonl"


class SessionLogStore:
    """
    File-backed log store.

    Parameters
    ----------
    sessions_dir:
        Directory holding one `<session_id>.jsonl` file per session.
    """

    def __init__(self, sessions_dir: Union[Path, str]) -> None:
        self.sessions_dir = Path(sessions_dir)

    def path_for(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}{LOG_SUFFIX}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Ensure the sessions directory exists. Safe to call repeatedly."""
        try:
            await asyncio.to_thread(ensure_dir, self.sessions_dir)
        except OSError as exc:
            raise StorageError(
                f"Cannot create sessions directory {self.sessions_dir}: {exc}"
            ) from exc
        logger.info("[SessionLogStore] Using sessions directory %s", self.sessions_dir)

    async def load(self, session_id: str) -> Optional[Session]:
        """
        Rebuild a session from its log, or return None if there is none.

        A torn trailing record is cut off the file here, so the next append
        starts from a clean line boundary.

        The returned session has model=None; the caller picks the model.
        """
        path = self.path_for(session_id)
        try:
            lines = await asyncio.to_thread(read_raw_lines, path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("[SessionLogStore] Failed to read %s: %s", path, exc)
            raise StorageError(f"Cannot read session log {path}: {exc}") from exc

        turns, torn_at = self._decode_lines(path, lines)
        if torn_at is not None:
            try:
                await asyncio.to_thread(truncate_file, path, torn_at)
            except OSError as exc:
                raise StorageError(
                    f"Cannot repair torn tail of session log {path}: {exc}"
                ) from exc
            logger.warning(
                "[SessionLogStore] Truncated torn trailing record in %s at byte %d",
                path,
                torn_at,
            )

        if not turns:
            return None

        first = turns[0]
        logger.info(
            "[SessionLogStore] Loaded %d turns for session %s", len(turns), session_id
        )
        return Session(
            id=session_id,
            author_id=first.author_id or "",
            channel_id=first.channel_id,
            turns=turns,
            created_at=first.timestamp,
            updated_at=turns[-1].timestamp,
            model=None,
        )

    async def append(self, session_id: str, turn: Turn) -> None:
        """Durably append one turn. Returns once the line is on disk."""
        path = self.path_for(session_id)
        try:
            await asyncio.to_thread(append_line, path, turn.to_log_line())
        except OSError as exc:
            raise StorageError(f"Cannot append to session log {path}: {exc}") from exc

    async def clear(self, session_id: str) -> None:
        """Delete a session log. A missing log is fine."""
        path = self.path_for(session_id)
        try:
            removed = await asyncio.to_thread(remove_file, path)
        except OSError as exc:
            logger.error("[SessionLogStore] Failed to delete %s: %s", path, exc)
            raise StorageError(f"Cannot delete session log {path}: {exc}") from exc
        if removed:
            logger.info("[SessionLogStore] Deleted session log %s", path)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    @staticmethod
    def _decode_lines(
        path: Path, lines: List[Tuple[int, bytes]]
    ) -> Tuple[List[Turn], Optional[int]]:
        """
        Decode raw log lines into turns.

        Returns the turns plus the byte offset of a torn trailing record
        (None when the log ends cleanly).
        """
        turns: List[Turn] = []
        last_index = len(lines) - 1
        for index, (offset, raw) in enumerate(lines):
            try:
                turns.append(Turn.model_validate_json(raw.decode("utf-8")))
            except (UnicodeDecodeError, ValidationError) as exc:
                if index == last_index:
                    logger.warning(
                        "[SessionLogStore] Skipping corrupt trailing record in %s: %s",
                        path,
                        exc,
                    )
                    return turns, offset
                raise StorageError(
                    f"Corrupt record #{index + 1} in {path}"
                ) from exc
        return turns, None
