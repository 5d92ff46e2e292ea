"""
Configuration management using pydantic-settings.
Loads from BOT_GATEWAY_* environment variables and ./.env
"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Client settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="BOT_GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gateway
    base_url: str = "http://localhost:8080"
    verify_key: str = ""

    # Transport (http2 applies to pooled clients the library creates)
    timeout: float = 30.0
    http2: bool = True

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> GatewaySettings:
    """Get cached settings instance."""
    return GatewaySettings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic stderr handler for applications and examples.

    The library itself never configures logging on import.
    """
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
