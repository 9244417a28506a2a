"""
Configuration from the environment and the JSON database config file.
"""

import json
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_CONFIG_FILE = "config.json"


class ConfigError(Exception):
    """The database config file is missing or malformed."""


class DbConfig(BaseModel):
    """Connection settings for the MongoDB backend."""

    model_config = ConfigDict(populate_by_name=True)

    host: str
    port: int = Field(ge=1, le=65535)
    db_name: str = Field(alias="dbname")
    username: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = Field(default=10, ge=1)


class Settings(BaseModel):
    backend: str = "memory"
    config_path: str = DEFAULT_CONFIG_FILE
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            backend=os.getenv("SECRET_STORE_BACKEND", "memory").lower(),
            config_path=os.getenv("SECRET_STORE_CONFIG", DEFAULT_CONFIG_FILE),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def load_db_config(path: str) -> DbConfig:
    """Read and validate the JSON database config at ``path``."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except (OSError, ValueError) as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    try:
        return DbConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config format in {path}: {e}") from e
