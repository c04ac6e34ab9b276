"""Runtime configuration loaded from the environment and an optional .env file."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the CLI, the API and the snapshot store."""

    model_config = SettingsConfigDict(
        env_prefix="ZKMERKLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tree_depth: int = Field(default=15, ge=0, le=32, description="Default tree depth")
    max_workers: Optional[int] = Field(
        default=None, gt=0, description="Thread pool size for layer construction"
    )
    zero_subtree_shortcut: bool = Field(default=True)
    database_url: str = Field(default="sqlite:///zk_merkle.db")
    output_dir: str = Field(default="out", description="Where proof files are written")
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process settings, read once."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging for command-line and server entry points."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
