# pibot/utils/logging.py
# -*- coding: utf-8 -*-
"""
PiBot Server - logging utilities
--------------------------------
Central logging configuration for the server.

We try to:
- Use a consistent format across all modules.
- Honour settings.debug / settings.log_level (more verbose in dev).
- Keep uvicorn, httpx and urllib3 chatter down to warnings.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Union


def _coerce_level(level: Union[int, str, None]) -> Optional[int]:
    if level is None:
        return None
    if isinstance(level, int):
        return level
    name = str(level).strip().upper()
    if not name:
        return None
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else None


def setup_logging(
    *,
    debug: bool = False,
    level: Union[int, str, None] = None,
) -> None:
    """
    Configure root logging for the process.

    Parameters
    ----------
    debug:
        If True, default log level becomes DEBUG, otherwise INFO.
        This is typically wired from settings.debug.
    level:
        Optional explicit level (logging.DEBUG, "warning", ...). Overrides
        the debug flag when it names a real level.

    This function is idempotent: calling it multiple times is safe.
    """
    base_level = _coerce_level(level)
    if base_level is None:
        base_level = logging.DEBUG if debug else logging.INFO

    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    # If logging is already configured (handlers exist), just adjust levels.
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(base_level)
        for h in root.handlers:
            h.setLevel(base_level)
        return

    logging.basicConfig(
        level=base_level,
        format=fmt,
        datefmt=datefmt,
    )

    for noisy in ("uvicorn.access", "httpx", "urllib3"):
        logging.getLogger(noisy).setLevel(os.getenv("PIBOT_NOISY_LOG_LEVEL", "WARNING"))


def get_logger(name: str) -> logging.Logger:
    """
    Small convenience wrapper around logging.getLogger.

    Usage:
        from pibot.utils import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
