# pibot/utils/__init__.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Utility toolbox
------------------------------
Shared helper functions that are used across the server:

- file_io   : append-only JSONL + small text file helpers
- logging   : central logging configuration
- timers    : small timing helpers

Import from here when it makes sense, for a clean public API, e.g.:

    from pibot.utils import setup_logging, get_logger
"""

from __future__ import annotations

from .file_io import (  # noqa: F401
    append_line,
    ensure_dir,
    read_raw_lines,
    read_text_safely,
    remove_file,
    truncate_file,
)

from .logging import (  # noqa: F401
    setup_logging,
    get_logger,
)

from .timers import (  # noqa: F401
    Stopwatch,
    now_ms,
)
