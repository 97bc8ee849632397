"""Runtime configuration read from the environment and a .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import dotenv_values

DEFAULT_MATTERMOST_URL = "http://localhost:8065"
DEFAULT_BOT_TOKEN = "token"
DEFAULT_TARANTOOL_ADDR = "localhost:3301"


@dataclass(frozen=True)
class Config:
    """Connection settings for the chat server and the database."""

    mattermost_url: str
    bot_token: str = field(repr=False)
    tarantool_addr: str


def load_config(env_file: str | os.PathLike[str] | None = ".env") -> Config:
    """Load settings; environment variables take precedence over the file.

    A missing or empty value falls back to the built-in default.
    """
    file_values: dict[str, str] = {}
    if env_file is not None and Path(env_file).is_file():
        file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}

    def lookup(key: str, default: str) -> str:
        value = os.environ[key] if key in os.environ else file_values.get(key, "")
        return value or default

    return Config(
        mattermost_url=lookup("MATTERMOST_URL", DEFAULT_MATTERMOST_URL),
        bot_token=lookup("BOT_TOKEN", DEFAULT_BOT_TOKEN),
        tarantool_addr=lookup("TARANTOOL_ADDR", DEFAULT_TARANTOOL_ADDR),
    )