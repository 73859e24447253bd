"""Managed connection to a Lavalink server with automatic reconnection."""

import asyncio
import logging
from typing import Any, Optional

from websockets.protocol import State

from ..rate_limited_logger import RateLimitedLogger
from .base import ConnectionState, ReconnectPolicy, ReconnectState
from .base.state import PERMANENTLY_DISABLED
from .errors import RetryExhaustedError, ValidationError
from .events import EventEmitter
from .models import ConnectionConfig
from .relay import EventPropagator, EventTap, RelaySet
from .transport import Payload, Transport, TransportFactory, WebSocketTransport

logger = logging.getLogger(__name__)

# Transport events re-emitted unchanged on the manager
PROPAGATED_EVENTS = ("upgrade", "unexpected-response", "open")


class ConnectionManager(EventEmitter):
    """Represents a connection to a Lavalink server.

    The manager owns exactly one transport at a time and replaces it on every
    reconnect. Observers subscribe on the manager itself; transport events are
    relayed so that subscriptions survive transport replacement.

    Events: 'error', 'upgrade', 'unexpected-response', 'message', 'open',
    'close' and 'max-retries-reached'.

    All methods must be called from the event loop that owns the manager.
    """

    def __init__(
        self,
        address: str,
        user_id: str,
        shards: int,
        password: str,
        conn_options: Any = None,
        transport_options: Optional[dict] = None,
        *,
        transport_factory: TransportFactory = WebSocketTransport,
        logger: Optional[RateLimitedLogger] = None,
        client_name: Optional[str] = None,
    ):
        config = ConnectionConfig.build(
            address, user_id, shards, password, conn_options, client_name
        )
        self._setup(config, transport_options, transport_factory, logger)

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        transport_options: Optional[dict] = None,
        *,
        transport_factory: TransportFactory = WebSocketTransport,
        logger: Optional[RateLimitedLogger] = None,
    ) -> "ConnectionManager":
        """Create a manager from an already validated config."""
        manager = cls.__new__(cls)
        manager._setup(config, transport_options, transport_factory, logger)
        return manager

    def _setup(
        self,
        config: ConnectionConfig,
        transport_options: Optional[dict],
        transport_factory: TransportFactory,
        rate_logger: Optional[RateLimitedLogger],
    ) -> None:
        if transport_options is not None and not isinstance(transport_options, dict):
            raise ValidationError("transport_options", "is not a dict")

        super().__init__(isolate_listeners=True)
        self.config = config
        self.transport_options = self._build_transport_options(transport_options)
        self.logger = rate_logger or RateLimitedLogger(config.client_name, logger)
        self.policy = ReconnectPolicy(config.options)
        self._reconnect: ReconnectState = self.policy.initial_state()
        self._transport_factory = transport_factory
        self._transport: Optional[Transport] = None
        self._relays: Optional[RelaySet] = None
        self._reconnecting_now = False
        self._connection_attempts = 0
        self._messages_received = 0

        self._connect()

    def _build_transport_options(self, transport_options: Optional[dict]) -> dict:
        options = dict(transport_options or {})
        headers = self.config.handshake_headers()
        headers.update(options.get("additional_headers") or {})
        options["additional_headers"] = headers
        return options

    @property
    def address(self) -> str:
        return self.config.address

    @property
    def user_id(self) -> str:
        return self.config.user_id

    @property
    def shards(self) -> int:
        return self.config.shards

    @property
    def transport(self) -> Optional[Transport]:
        """The attached transport, or None while reconnecting or closed."""
        return self._transport

    @property
    def reconnect_state(self) -> ReconnectState:
        return self._reconnect

    @property
    def connection_attempts(self) -> int:
        """Transports created so far, the initial one included."""
        return self._connection_attempts

    @property
    def state(self) -> ConnectionState:
        """Current lifecycle state, derived from the transport and reconnect state."""
        if self._reconnecting_now:
            return ConnectionState.RECONNECTING_NOW

        transport = self._transport
        transport_down = transport is None or transport.state in (
            State.CLOSING,
            State.CLOSED,
        )
        if self._reconnect.disabled and transport_down:
            return ConnectionState.PERMANENTLY_CLOSED
        if self._reconnect.pending:
            return ConnectionState.RECONNECT_SCHEDULED
        if transport_down:
            return ConnectionState.DISCONNECTED
        if transport.state is State.OPEN:
            return ConnectionState.CONNECTED
        return ConnectionState.CONNECTING

    def is_connected(self) -> bool:
        """Check if the connection is currently open."""
        return self.state is ConnectionState.CONNECTED

    def send(self, payload: Payload) -> None:
        """Sends something to the server.

        Best effort: if no transport is attached (mid-reconnect) the payload
        is dropped silently. Write failures surface as 'error' events.
        """
        transport = self._transport
        if transport is None:
            self.logger.send_dropped()
            return
        transport.send(payload)

    def send_reliable(self, payload: Payload) -> "asyncio.Future[None]":
        """Sends something to the server and reports the write outcome.

        The future resolves once the payload is written and fails with
        TransportError otherwise. If no transport is attached the returned
        future never completes: nothing is queued across reconnects, so
        callers that wait on it should use a timeout.
        """
        transport = self._transport
        if transport is None:
            self.logger.send_dropped()
            return asyncio.get_running_loop().create_future()
        return transport.send_reliable(payload)

    def close(self, permanent: bool = False) -> None:
        """Closes the connection.

        With permanent=False the transport is torn down and recreated right
        away, which is useful for purposefully restarting the connection.
        With permanent=True no further reconnection happens. Safe to call
        repeatedly.
        """
        if permanent:
            self._close_permanently()
        else:
            self._reconnect_now()

    def _close_permanently(self) -> None:
        self._reconnect.cancel_timer()
        already_closed = self.state is ConnectionState.PERMANENTLY_CLOSED
        self._reconnect.attempts_used = PERMANENTLY_DISABLED

        transport = self._transport
        if transport is not None and transport.state not in (
            State.CLOSING,
            State.CLOSED,
        ):
            self.logger.info("Closing connection permanently")
            transport.close()
        elif not already_closed:
            self.logger.info("Connection closed permanently")
            self._detach_transport()

    def _connect(self) -> None:
        """Create a transport and bind the relays to it."""
        transport = self._transport_factory(self.config.address, self.transport_options)
        source = type(transport).__name__
        relays = RelaySet(transport)
        for event in PROPAGATED_EVENTS:
            relays.bind(EventPropagator(event, self, source))
        relays.bind(EventTap("error", self, self._on_transport_error, source))
        relays.bind(EventTap("message", self, self._process_message, source))
        relays.bind(EventTap("close", self, self._on_transport_close, source), once=True)

        self._transport = transport
        self._relays = relays
        self._connection_attempts += 1
        self.logger.debug(
            f"Connecting to {self.config.address} (attempt {self._connection_attempts})"
        )

    def _detach_transport(self) -> Optional[Transport]:
        """Unbind the relays from the current transport and forget it."""
        transport, self._transport = self._transport, None
        if self._relays is not None:
            self._relays.unbind()
            self._relays = None
        return transport

    def _reconnect_now(self) -> None:
        """Tear down the current transport and open a new one without delay."""
        if self.state is ConnectionState.PERMANENTLY_CLOSED:
            self.logger.debug("Reconnect skipped: connection is permanently closed")
            return

        self._reconnect.cancel_timer()
        self._reconnecting_now = True
        try:
            old = self._detach_transport()
            if old is not None and old.state not in (State.CLOSING, State.CLOSED):
                old.close()
            self._connect()
        finally:
            self._reconnecting_now = False

    def _on_reconnect_timer(self) -> None:
        self._reconnect.timer = None
        if self._reconnect.disabled:
            # close(permanent=True) won the race against this timer
            return
        self._reconnect_now()

    def _on_transport_error(self, error: Any) -> None:
        self.logger.transport_error(error)

    def _on_transport_close(self, code: int = 1006, reason: str = "") -> None:
        """Decide what happens after the transport went down."""
        current = self._transport
        if current is not None and current.state not in (State.CLOSING, State.CLOSED):
            # a 'close' listener already replaced the transport
            return

        self._detach_transport()
        state = self._reconnect

        if self.policy.is_disabled(state):
            self.logger.info(f"Connection closed permanently ({code} {reason})".rstrip())
            return

        retry = self.policy.should_retry(state)
        state.attempts_used += 1
        max_retries = self.config.options.retries
        self.logger.connection_error(
            f"closed with code {code} {reason}".rstrip(), state.attempts_used, max_retries
        )

        if not retry:
            self.logger.error(f"Max retries reached ({max_retries}), giving up")
            self.emit(
                "max-retries-reached",
                RetryExhaustedError(state.attempts_used, max_retries),
            )
            return

        delay_ms = state.current_delay_ms
        state.current_delay_ms = self.policy.next_delay(state)
        state.cancel_timer()
        state.timer = asyncio.get_running_loop().call_later(
            delay_ms / 1000, self._on_reconnect_timer
        )
        self.logger.reconnect_scheduled(delay_ms, state.attempts_used, max_retries)

    def _process_message(self, data: Payload) -> None:
        """Hook for decoding server messages. Override in subclasses."""
        self._messages_received += 1
        self.logger.debug(f"Message received ({len(data)} bytes)")

    def get_stats(self) -> dict:
        """Get statistics for this connection."""
        return {
            "state": str(self.state),
            "connection_attempts": self._connection_attempts,
            "reconnect_attempts": max(self._reconnect.attempts_used, 0),
            "messages_received": self._messages_received,
            **self.logger.get_stats(),
        }
