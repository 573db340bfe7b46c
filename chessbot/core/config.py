"""
Bot configuration.

Values come from a YAML file. Any key can be overridden by an environment variable named
CHESSBOT_<KEY> (a .env file next to the process is loaded first, if there is one).
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

from chessbot.core.shared_types import SessionBackend

logger = logging.getLogger("Config")

VERSION = "0.1.0"
SOURCE_URL = "https://github.com/nevarro-space/matrix-chessbot"
ENV_PREFIX = "CHESSBOT_"


class ConfigError(Exception):
    """Configuration file missing, unreadable or invalid."""


class BotConfig(BaseModel):
    homeserver: str
    username: str
    password_file: str = "./password"
    database_url: str = "sqlite:///chessbot.db"
    log_level: str = "debug"
    log_file: Optional[str] = None
    session_backend: SessionBackend = SessionBackend.ROOM_STATE
    retry_attempts: int = 5
    retry_base_delay: float = 1.0

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        """Full user id: @localpart:server"""
        value = value.strip()
        localpart, sep, server = value.removeprefix("@").partition(":")
        if not value.startswith("@") or not sep or not localpart or not server:
            raise ValueError(f"Cannot interpret username: {value!r} as '@localpart:server'.")
        return value

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("retry_attempts must be at least 1.")
        return value

    @property
    def localpart(self) -> str:
        return self.username.removeprefix("@").split(":", 1)[0]

    def get_password(self) -> str:
        logger.debug("Reading password from %s", self.password_file)
        try:
            return Path(self.password_file).read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigError(f"Could not read password from {self.password_file}: {e}") from e


def _env_overrides() -> dict[str, str]:
    overrides = {}
    for name in BotConfig.model_fields:
        value = os.getenv(ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    return overrides


def load_config(path: str | Path) -> BotConfig:
    """Read the YAML config at `path`, apply CHESSBOT_* overrides and validate."""
    load_dotenv(find_dotenv(usecwd=True))
    logger.info("Reading config from %s...", path)
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config from {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping.")

    raw.update(_env_overrides())
    try:
        return BotConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e
