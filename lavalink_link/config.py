"""Configuration loader."""

import os
from typing import Mapping, Optional

from lavalink_link.connection import ConnectionConfig, ConnectionOptions
from lavalink_link.connection.errors import ValidationError


class Config:
    """Application configuration constants."""

    # Connection defaults
    DEFAULT_ADDRESS = "ws://localhost:2333"
    DEFAULT_PASSWORD = "youshallnotpass"
    DEFAULT_SHARDS = 1
    CLIENT_NAME = "lavalink-link"

    # Monitoring
    STATS_INTERVAL = 300.0
    LOGGER_WINDOW = 10.0
    LOG_LEVEL = "INFO"


def _number(env: Mapping[str, str], name: str, cast) -> Optional[float]:
    raw = env.get(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise ValidationError(name, f"is not a valid {cast.__name__}: {raw!r}") from None


def load_config(env: Optional[Mapping[str, str]] = None) -> ConnectionConfig:
    """Load the connection configuration from LAVALINK_* environment variables."""
    env = os.environ if env is None else env

    option_values = {
        "retries": _number(env, "LAVALINK_RETRIES", int),
        "retry_timeout_ms": _number(env, "LAVALINK_RETRY_TIMEOUT_MS", float),
        "retry_timeout_multiplier": _number(
            env, "LAVALINK_RETRY_TIMEOUT_MULTIPLIER", float
        ),
    }
    options = ConnectionOptions.from_dict(
        {key: value for key, value in option_values.items() if value is not None}
    )

    shards = _number(env, "LAVALINK_SHARDS", int)

    return ConnectionConfig.build(
        address=env.get("LAVALINK_ADDRESS", Config.DEFAULT_ADDRESS),
        user_id=env.get("LAVALINK_USER_ID", ""),
        shards=Config.DEFAULT_SHARDS if shards is None else shards,
        password=env.get("LAVALINK_PASSWORD", Config.DEFAULT_PASSWORD),
        conn_options=options,
        client_name=env.get("LAVALINK_CLIENT_NAME", Config.CLIENT_NAME),
    )
