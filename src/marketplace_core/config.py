"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup — if a setting is malformed, the app fails fast with a clear
error message.

Business constants (transition tables, scoring weights, thresholds, SLA
windows) are compiled in and deliberately not configurable here; see
domain/transitions.py and domain/constants.py.

Usage:
    from marketplace_core.config import get_settings
    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from marketplace_core.domain.constants import TOP_MATCHES_COUNT


class Settings(BaseSettings):
    """Central configuration for the marketplace lifecycle core."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database ---
    database_url: str = (
        "postgresql+asyncpg://marketplace:marketplace_dev"
        "@localhost:5432/marketplace"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Transition Guard ---
    # Also audit accepted checks (default: rejections only).
    guard_audit_accepted: bool = False
    guard_actor_id: str = "state-machine"

    # --- Matching ---
    matching_top_n: int = Field(default=TOP_MATCHES_COUNT, ge=1, le=100)

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
