"""Settings and database constants for recordkit.

``RecordkitSettings`` reads configuration from ``RECORDKIT_*`` environment
variables and an optional ``.env`` file.  ``DbConfig`` holds the default
chunk size of bulk inserts.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not at first use
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** A local SQLite file works out of the box

Examples:
    >>> from recordkit.settings import RecordkitSettings
    >>> settings = RecordkitSettings(bulk_chunk_size=500)
    >>> settings.bulk_chunk_size
    500

Tags:
    settings, configuration, pydantic, environment, recordkit
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DbConfig:
    """Database constants."""

    BULK_INSERT_CHUNK_SIZE = 1000


class RecordkitSettings(BaseSettings):
    """Runtime settings.

    Fields
    ──────
    database_url     : SQLAlchemy URL used by ``create_engine_from_settings``
    env              : Deployment environment; ``dev`` logs failed deletes at error level
    echo             : Log all SQL emitted by the engine
    bulk_chunk_size  : Rows per multi-row INSERT in ``DbService.insert_bulk``
    log_level        : Structlog log level
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = "sqlite:///recordkit.db"
    echo: bool = False
    bulk_chunk_size: int = Field(default=DbConfig.BULK_INSERT_CHUNK_SIZE, gt=0)

    # ── Observability ────────────────────────────────────────────
    env: str = "prod"
    log_level: str = "INFO"

    @property
    def is_dev(self) -> bool:
        return self.env.lower() == "dev"


@lru_cache(maxsize=1)
def get_settings() -> RecordkitSettings:
    """Return the process-wide settings, loaded once."""
    return RecordkitSettings()


__all__ = [
    "DbConfig",
    "RecordkitSettings",
    "get_settings",
]
