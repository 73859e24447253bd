"""Managed Lavalink WebSocket connection."""

from .base import ConnectionOptions, ConnectionState, ReconnectPolicy, ReconnectState
from .errors import LavalinkLinkError, RetryExhaustedError, TransportError, ValidationError
from .events import EventEmitter
from .manager import ConnectionManager
from .models import ConnectionConfig
from .relay import EventPropagator, EventTap, RelaySet
from .transport import Transport, WebSocketTransport

__all__ = [
    "ConnectionManager",
    "ConnectionConfig",
    "ConnectionOptions",
    "ConnectionState",
    "ReconnectPolicy",
    "ReconnectState",
    "EventEmitter",
    "EventPropagator",
    "EventTap",
    "RelaySet",
    "Transport",
    "WebSocketTransport",
    "LavalinkLinkError",
    "ValidationError",
    "TransportError",
    "RetryExhaustedError",
]
