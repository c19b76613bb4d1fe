# pibot/core/config.py
# -*- coding: utf-8 -*-
"""
PiBot Server - Configuration
----------------------------
Central configuration for the server, including:

- app metadata
- API host/port
- filesystem paths (data dir, session logs)
- cloud backend (Anthropic),
- local backend (Ollama HTTP),
- context window and system prompt.

"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pibot.core.errors import ConfigurationError
from pibot.utils.file_io import read_text_safely

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

# This file is: <root>/pibot/core/config.py
PACKAGE_DIR: Path = Path(__file__).resolve().parents[1]   # .../pibot
ROOT_DIR: Path = PACKAGE_DIR.parent                        # project root

DATA_DIR: Path = ROOT_DIR / "data"

DEFAULT_SYSTEM_PROMPT = (
    "You are PiBot, a helpful AI assistant running on a Raspberry Pi.\n"
    "You are friendly, concise, and helpful.\n"
    "You remember previous conversations with the user."
)


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """
    Global configuration for the server.

    This class is instantiated once at import time as `settings`
    and used as the default everywhere in the codebase. Tests build their
    own instances and pass them to create_app().
    """

    model_config = SettingsConfigDict(
        env_file=ROOT_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App / server basics -----------------------------------------------
    app_name: str = "PiBot Server"
    environment: Literal["development", "production", "test"] = "development"
    debug: bool = True
    log_level: Optional[str] = None

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # --- Filesystem paths ---------------------------------------------------
    data_dir: Path = DATA_DIR
    # Defaults to <data_dir>/sessions when unset.
    sessions_dir: Optional[Path] = None

    # --- Cloud backend (Anthropic) -----------------------------------------
    # ENV: ANTHROPIC_API_KEY=sk-ant-...
    anthropic_api_key: Optional[str] = Field(
        default=None,
        description="API key for the cloud backend (env: ANTHROPIC_API_KEY).",
    )
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"
    anthropic_timeout_s: float = 60.0

    default_model: str = "claude-3-5-sonnet-20241022"

    # --- Local backend (Ollama HTTP) ---------------------------------------
    ollama_enabled: bool = True
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server root, e.g. http://localhost:11434 (env: OLLAMA_BASE_URL).",
    )
    ollama_timeout_s: float = 120.0
    ollama_discovery_on_startup: bool = True

    # --- Context ------------------------------------------------------------
    max_context_turns: int = 50
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    system_prompt_path: Optional[Path] = None

    @property
    def resolved_sessions_dir(self) -> Path:
        return self.sessions_dir or (self.data_dir / "sessions")

    @property
    def cloud_configured(self) -> bool:
        return bool(self.anthropic_api_key)

    def load_system_prompt(self) -> str:
        """
        System prompt text. A readable, non-empty `system_prompt_path` file
        overrides the inline `system_prompt` value.
        """
        if self.system_prompt_path is not None:
            text = read_text_safely(self.system_prompt_path, strip=True)
            if text:
                return text
        return self.system_prompt.strip()


def validate_settings(cfg: Settings) -> None:
    """At least one backend must be configured."""
    if not cfg.cloud_configured and not cfg.ollama_enabled:
        raise ConfigurationError(
            "ANTHROPIC_API_KEY is required when Ollama is not enabled."
        )
    if cfg.max_context_turns < 0:
        raise ConfigurationError("MAX_CONTEXT_TURNS must be >= 0.")


# Single global settings instance used by the rest of the app.
settings = Settings()
