# pibot/utils/timers.py
# -*- coding: utf-8 -*-
"""
PiBot Server - timing utilities
-------------------------------
Lightweight helpers for measuring execution time and logging it.

Mostly used to compare cloud vs. local backend latency per turn.
"""

from __future__ import annotations

import logging
import time
from contextlib import ContextDecorator
from typing import Optional


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class Stopwatch(ContextDecorator):
    """
    Simple stopwatch context manager.

    Example:
        from pibot.utils import Stopwatch, get_logger

        logger = get_logger(__name__)

        with Stopwatch("ollama chat", logger):
            ...

    This will log something like:
        ollama chat took 0.237 s

    `elapsed` stays readable after the block exits.
    """

    def __init__(
        self,
        label: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.INFO,
    ) -> None:
        self.label = label
        self.logger = logger or logging.getLogger(__name__)
        self.level = level
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:  # type: ignore[override]
        self.elapsed = time.perf_counter() - self._start
        if exc_type is None:
            self.logger.log(self.level, "%s took %.3f s", self.label, self.elapsed)
        else:
            self.logger.log(
                self.level, "%s failed after %.3f s", self.label, self.elapsed
            )
