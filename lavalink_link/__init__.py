"""Resilient client connection to a Lavalink server."""

from .connection import (
    ConnectionConfig,
    ConnectionManager,
    ConnectionOptions,
    ConnectionState,
    RetryExhaustedError,
    TransportError,
    ValidationError,
)
from .rate_limited_logger import RateLimitedLogger

__all__ = [
    "ConnectionManager",
    "ConnectionConfig",
    "ConnectionOptions",
    "ConnectionState",
    "RateLimitedLogger",
    "ValidationError",
    "TransportError",
    "RetryExhaustedError",
]
