# pibot/main.py
# -*- coding: utf-8 -*-
"""
PiBot Server - FastAPI application entrypoint
---------------------------------------------
This file wires everything together:

- Sets up central logging.
- Builds the services (registry, backends, router, sessions, pipeline).
- Creates the FastAPI app with a lifespan that initializes the session log
  directory and runs local model discovery.
- Maps core errors to HTTP responses.
- Mounts routers:
    * /chat             (HTTP)      -> one chat turn
    * /sessions/*       (HTTP)      -> clear / switch model / history
    * /models, /status  (HTTP)      -> read-only operator views
    * /ws/chat          (WebSocket) -> same pipeline as /chat
- Exposes an ASGI `app` object for uvicorn.

Typical run command (dev):

    uvicorn pibot.main:app --host 0.0.0.0 --port 8000 --reload

"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pibot.core.config import Settings, settings as default_settings, validate_settings
from pibot.core.errors import (
    BackendError,
    ConfigurationError,
    NoProviderAvailableError,
    PiBotError,
    SessionNotFoundError,
    StorageError,
    UnknownModelError,
    error_code,
)
from pibot.core.services import build_services
from pibot.providers.base import BackendSet
from pibot.routers.chat import router as chat_router
from pibot.routers.sessions import router as sessions_router
from pibot.routers.status import router as status_router
from pibot.routers.ws import router as ws_router
from pibot.utils import get_logger, setup_logging

logger = get_logger(__name__)

# Most specific first; PiBotError is the catch-all.
_STATUS_CODES = (
    (SessionNotFoundError, 404),
    (UnknownModelError, 404),
    (ConfigurationError, 503),
    (NoProviderAvailableError, 503),
    (BackendError, 502),
    (StorageError, 500),
    (PiBotError, 500),
)


def _status_for(exc: PiBotError) -> int:
    for cls, status in _STATUS_CODES:
        if isinstance(exc, cls):
            return status
    return 500


async def _pibot_error_handler(request: Request, exc: PiBotError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"error": error_code(exc), "detail": str(exc)},
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    backends: Optional[BackendSet] = None,
) -> FastAPI:
    """
    Application factory.

    Parameters
    ----------
    settings:
        Configuration; defaults to the module-level `settings`.
    backends:
        Pre-built backends (tests pass fakes here). Built from settings
        when omitted.
    """
    cfg = settings or default_settings
    validate_settings(cfg)
    services = build_services(cfg, backends=backends)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.startup()
        logger.info(
            "PiBot server ready (env=%s, backends=%s)",
            cfg.environment,
            [k.value for k in services.backends.configured()],
        )
        yield
        logger.info("PiBot server shutting down")

    app = FastAPI(
        title=cfg.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    if cfg.environment != "production":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(PiBotError, _pibot_error_handler)

    app.include_router(chat_router)
    app.include_router(sessions_router)
    app.include_router(status_router)
    app.include_router(ws_router)

    # ------------------------------------------------------------------
    # Meta / health endpoints
    # ------------------------------------------------------------------

    @app.get("/", tags=["meta"])
    async def root():
        """
        Simple root endpoint so you can quickly see the server is alive.
        """
        return {
            "name": cfg.app_name,
            "environment": cfg.environment,
            "message": "PiBot server is running.",
        }

    @app.get("/health", tags=["meta"])
    async def health_check():
        """
        Lightweight health check for monitoring scripts.
        """
        return {
            "status": "ok",
            "environment": cfg.environment,
            "debug": cfg.debug,
            "backends": [k.value for k in services.backends.configured()],
        }

    logger.info("FastAPI app created (env=%s)", cfg.environment)
    return app


setup_logging(debug=default_settings.debug, level=default_settings.log_level)

# ASGI app for uvicorn / gunicorn
app = create_app()


if __name__ == "__main__":
    """
    Allow `python3 -m pibot.main` during development.

    In production you normally use:

        uvicorn pibot.main:app --host 0.0.0.0 --port 8000
    """
    import uvicorn

    uvicorn.run(
        "pibot.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=(default_settings.environment != "production"),
    )
