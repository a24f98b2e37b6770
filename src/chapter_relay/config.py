"""Relay configuration with sensible defaults for a single desktop install."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chapter_relay._version import __version__

logger = logging.getLogger(__name__)

_RELAY_HOME = Path.home() / ".chapter-relay"


class Settings(BaseSettings):
    """
    Relay configuration.

    All settings can be overridden via environment variables with the
    CHAPTER_RELAY_ prefix. Defaults match the desktop app, which connects to
    ws://localhost:3001.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAPTER_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False
    log_format: Literal["text", "json"] = "text"
    cors_allow_origins: str = "*"

    # Liveness probing. A client that misses one full interval is evicted.
    heartbeat_interval_seconds: float = 10.0

    # Delay before a failed chapter is offered to the worker again.
    retry_backoff_seconds: float = 5.0

    # Put the in-flight chapter back at the front of the queue when the
    # worker holding it disconnects.
    requeue_on_worker_disconnect: bool = True

    # Per-connection outbound buffer (envelopes) before frames are dropped.
    outbox_max_size: int = 1000

    # Local key/value store backing the /storage endpoints.
    settings_file: str = str(_RELAY_HOME / "settings.json")

    max_body_bytes: int = 50 * 1024 * 1024  # 50 MB

    version: str = __version__

    @field_validator("heartbeat_interval_seconds", "retry_backoff_seconds")
    @classmethod
    def _require_positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"interval must be > 0, got {value}")
        return value

    @field_validator("outbox_max_size")
    @classmethod
    def _require_positive_outbox(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"outbox_max_size must be >= 1, got {value}")
        return value

    @property
    def cors_allow_origins_list(self) -> list[str]:
        """Parse comma-delimited CORS origins into a list."""
        origins = [origin.strip() for origin in self.cors_allow_origins.split(",")]
        cleaned = [origin for origin in origins if origin]
        return cleaned or ["*"]

    @property
    def settings_path(self) -> Path:
        return Path(self.settings_file).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
