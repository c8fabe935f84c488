"""
Application Settings for the Profile Widget API.

Settings are loaded from environment variables (and an optional `.env` file)
using pydantic-settings. `get_settings()` builds a fresh instance on every call
so that secrets such as the bot token are read at call time, not frozen at
import time.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DISCORD_API_BASE_URL = "https://discord.com/api/v10"


class Settings(BaseSettings):
    """Process-wide configuration"""

    discord_bot_token: str = ""
    discord_api_base_url: str = DEFAULT_DISCORD_API_BASE_URL
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)

    profile_cache_ttl_seconds: int = Field(default=600, gt=0)
    profile_cache_max_entries: int = Field(default=5000, gt=0)
    cache_sweep_interval_seconds: int = Field(default=60, gt=0)

    widget_base_url: str = ""
    cors_origins: List[str] = ["*"]

    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Load settings from the current environment."""
    return Settings()
