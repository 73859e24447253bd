"""Shared fixtures for connection tests."""

import asyncio

import pytest
import pytest_asyncio
from websockets.protocol import State

from lavalink_link.connection import ConnectionManager
from lavalink_link.connection.events import EventEmitter

ADDRESS = "ws://localhost:2333"
USER_ID = "170939974227591168"
PASSWORD = "youshallnotpass"


class FakeTransport(EventEmitter):
    """In-memory transport driven by the test."""

    def __init__(self, url, options):
        super().__init__(isolate_listeners=False)
        self.url = url
        self.options = options
        self.state = State.CONNECTING
        self.sent = []
        self.close_calls = 0

    def open(self):
        self.state = State.OPEN
        self.emit("upgrade", {"status": 101})
        self.emit("open")

    def receive(self, data):
        self.emit("message", data)

    def fail(self, error):
        self.emit("error", error)

    def drop(self, code=1006, reason=""):
        """Simulate the link going down."""
        self.state = State.CLOSED
        self.emit("close", code, reason)

    def send(self, payload):
        self.sent.append(payload)

    def send_reliable(self, payload):
        self.sent.append(payload)
        future = asyncio.get_running_loop().create_future()
        future.set_result(None)
        return future

    def close(self, code=1000, reason=""):
        self.close_calls += 1
        if self.state in (State.CLOSING, State.CLOSED):
            return
        self.state = State.CLOSING


def fire_reconnect_timer(manager):
    """Run the armed reconnect timer now instead of waiting for it."""
    timer = manager.reconnect_state.timer
    assert timer is not None, "no reconnect timer armed"
    timer.cancel()
    manager._on_reconnect_timer()


@pytest.fixture
def transports():
    """Every FakeTransport created by the factory, in creation order."""
    return []


@pytest.fixture
def transport_factory(transports):
    def factory(url, options):
        transport = FakeTransport(url, options)
        transports.append(transport)
        return transport

    return factory


@pytest.fixture
def make_manager(transport_factory):
    def make(conn_options=None, transport_options=None):
        return ConnectionManager(
            ADDRESS,
            USER_ID,
            1,
            PASSWORD,
            conn_options,
            transport_options,
            transport_factory=transport_factory,
        )

    return make


@pytest_asyncio.fixture
async def reconnect_delays(monkeypatch):
    """Delays (in seconds) of every reconnect timer armed during the test."""
    loop = asyncio.get_running_loop()
    delays = []
    real_call_later = loop.call_later

    def call_later(delay, callback, *args, **kwargs):
        if getattr(callback, "__name__", "") == "_on_reconnect_timer":
            delays.append(delay)
        return real_call_later(delay, callback, *args, **kwargs)

    monkeypatch.setattr(loop, "call_later", call_later)
    return delays
