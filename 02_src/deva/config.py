"""Runtime settings for Deva agents."""

import os
from pathlib import Path
from typing import Union

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, field_validator

PathLike = Union[str, Path]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Process-level settings (logging only; agent config is a shared mapping)."""

    log_level: str = "INFO"
    log_file: Path | None = None

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {value}")
        return level


def load_settings(env_file: PathLike | None = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional .env file to load first; otherwise the nearest
                  .env above the working directory. Variables already set
                  in the environment take precedence.

    Returns:
        Settings built from DEVA_LOG_LEVEL and DEVA_LOG_FILE.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))

    return Settings(
        log_level=os.getenv("DEVA_LOG_LEVEL", "INFO"),
        log_file=os.getenv("DEVA_LOG_FILE") or None,
    )
