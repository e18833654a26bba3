"""
Server Settings

Pydantic settings for the API server and the LLM client.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import ANTHROPIC_BASE_URL, ANTHROPIC_VERSION
from .env_loader import ensure_env_loaded


class Settings(BaseSettings):
    """Application settings, read from the environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="STORYREEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # LLM
    anthropic_api_key: str = Field(default="")
    anthropic_base_url: str = Field(default=ANTHROPIC_BASE_URL)
    anthropic_version: str = Field(default=ANTHROPIC_VERSION)
    # None waits on the transport indefinitely
    request_timeout: Optional[float] = Field(default=None)

    # Storage
    projects_dir: Path = Field(default=Path("projects"))
    history_file: Path = Field(default=Path("projects") / "history.jsonl")
    pipeline_config: Path = Field(default=Path("config") / "pipeline.json")

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    ensure_env_loaded()
    return Settings()
