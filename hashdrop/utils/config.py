"""
Configuration management for hashdrop.

Uses pydantic-settings to load configuration from environment variables
(prefixed with ``HASHDROP_``) and .env files.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtensionPolicy(str, Enum):
    """How the extension of a canonical store path is chosen."""

    ORIGINAL = "original"
    MIME_PREFERRED = "mime_preferred"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Directory layout
    input_dir: Path = Path("/var/lib/hashdrop/in")
    staging_dir: Path = Path("/var/lib/hashdrop/staging")
    store_dir: Path = Path("/var/lib/hashdrop/store")

    # Commit behaviour
    extension_policy: ExtensionPolicy = ExtensionPolicy.ORIGINAL
    allow_cross_device: bool = False

    # Identify worker pool
    identify_workers: int = Field(default=4, ge=1)
    identify_queue_size: int = Field(default=16, ge=1)
    hash_buffer_size: int = Field(default=1024 * 1024, ge=1)  # bytes
    sniff_bytes: int = Field(default=3072, ge=1)  # bytes

    # Watcher
    ignored_suffixes: str = ".part,.crdownload,.tmp,.swp"
    poll_interval: float = Field(default=0.2, gt=0)  # seconds

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="HASHDROP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_ignored_suffixes(self) -> set[str]:
        """Parse ignored suffixes into a lowercase set."""
        return {
            s.strip().lower()
            for s in self.ignored_suffixes.split(',')
            if s.strip()
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
