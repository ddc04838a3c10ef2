"""
Configuration settings for threadboard.

Every setting can be overridden with a ``THREADBOARD_``-prefixed
environment variable or a ``.env`` file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from threadboard.core.models import SortType


class Settings(BaseSettings):
    """Board configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="THREADBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: Path = Field(default=Path("board.db"), description="SQLite database file")
    default_sort: SortType = Field(default=SortType.HOT, description="Feed sort when none is given")
    max_reply_depth: int = Field(
        default=3, ge=0, description="Deepest comment level that still offers a reply"
    )
    feed_limit: int = Field(default=25, ge=1, description="Posts shown per feed page")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
