"""Configuration management for canvasedit."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from canvasedit.stream.extractor import ScanOrder

# Get CANVASEDIT_HOME for .env file location
_canvasedit_home = Path(os.environ.get("CANVASEDIT_HOME", os.path.expanduser("~/.canvasedit")))
_env_files = [
    str(_canvasedit_home / ".env.local"),
    str(_canvasedit_home / ".env"),
    ".env.local",
    ".env",
]


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="CANVASEDIT_",
        env_file=tuple(_env_files),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Vault Settings
    vault_path: str = ""  # Default vault root (for env var fallback)

    # Stream parser Settings
    scan_order: ScanOrder = ScanOrder.PRIORITY

    # Mock stream replay
    mock_chunk_delay_ms: int = 50


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
