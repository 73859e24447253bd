"""Base connection components: options, state and reconnection policy."""

from .config import ConnectionOptions
from .policy import ReconnectPolicy
from .state import PERMANENTLY_DISABLED, ConnectionState, ReconnectState

__all__ = [
    "ConnectionOptions",
    "ConnectionState",
    "ReconnectState",
    "ReconnectPolicy",
    "PERMANENTLY_DISABLED",
]
