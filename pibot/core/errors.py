# pibot/core/errors.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Error taxonomy
-----------------------------
Every failure the core distinguishes has its own exception type:

- SessionNotFoundError     : append on a session that is not cached
- StorageError             : log read/write failure (missing log is NOT one)
- ConfigurationError       : requested backend is not configured
- UnknownModelError        : explicit model switch to an unregistered model
- NoProviderAvailableError : every routing rule was exhausted
- BackendError             : the backend itself failed (HTTP, JSON, payload)

The HTTP layer maps these to status codes in pibot.main.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from pibot.core.types import BackendKind


class PiBotError(Exception):
    """Base class for all errors raised by the PiBot core."""


class SessionNotFoundError(PiBotError):
    """Raised when an operation needs a cached session that does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session {session_id!r} not found. Call get_or_create() first."
        )
        self.session_id = session_id


class StorageError(PiBotError):
    """Raised when the session log cannot be read, decoded or written."""


class ConfigurationError(PiBotError):
    """
    Raised when a backend is required but not configured.

    `backend` names the missing backend when there is one; it is None for
    global configuration problems (e.g. no backend configured at all).
    """

    def __init__(self, message: str, backend: Optional["BackendKind"] = None) -> None:
        super().__init__(message)
        self.backend = backend


class UnknownModelError(PiBotError):
    """Raised when a model id / display name is not in the registry."""

    def __init__(self, query: str) -> None:
        super().__init__(f"Model not found: {query!r}")
        self.query = query


class NoProviderAvailableError(PiBotError):
    """Raised when no routing rule could pick a backend for a model."""

    def __init__(self, model: str) -> None:
        super().__init__(f"No LLM provider available for model: {model}")
        self.model = model


class BackendError(PiBotError):
    """
    Raised when a backend call fails (unreachable, HTTP error, bad payload).

    The core never retries; callers may retry at their discretion.
    """

    def __init__(
        self,
        message: str,
        backend: Optional["BackendKind"] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.backend = backend
        self.status_code = status_code


_ERROR_CODES = {
    SessionNotFoundError: "session_not_found",
    StorageError: "storage_error",
    ConfigurationError: "provider_not_configured",
    UnknownModelError: "unknown_model",
    NoProviderAvailableError: "no_provider_available",
    BackendError: "backend_error",
}


def error_code(exc: PiBotError) -> str:
    """Stable snake_case code for an error, used in HTTP and WS error bodies."""
    for cls in type(exc).__mro__:
        code = _ERROR_CODES.get(cls)
        if code is not None:
            return code
    return "internal_error"
