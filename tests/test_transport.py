"""Tests for the WebSocket transport against a local server."""

import asyncio
import socket
from http import HTTPStatus

import pytest
import pytest_asyncio
from websockets.asyncio.server import serve
from websockets.protocol import State

from lavalink_link.connection import (
    ConnectionManager,
    ConnectionState,
    RetryExhaustedError,
    TransportError,
    WebSocketTransport,
)

USER_ID = "170939974227591168"


async def wait_for_event(emitter, event, timeout=2.0):
    """Wait for the next emission of event and return its arguments."""
    future = asyncio.get_running_loop().create_future()

    def listener(*args):
        if not future.done():
            future.set_result(args)

    emitter.once(event, listener)
    return await asyncio.wait_for(future, timeout)


def record_events(emitter, *events):
    seen = []
    for event in events:
        emitter.on(event, lambda *args, event=event: seen.append((event, args)))
    return seen


def unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class LavalinkStub:
    """Local WebSocket server recording handshakes and echoing frames."""

    def __init__(self):
        self.requests = []
        self.reject_with = None
        self.close_with = None

    async def handler(self, ws):
        self.requests.append(ws.request)
        if self.close_with is not None:
            await ws.close(*self.close_with)
            return
        async for message in ws:
            await ws.send(message)

    def process_request(self, connection, request):
        if self.reject_with is not None:
            return connection.respond(self.reject_with, "Unauthorized\n")
        return None


@pytest_asyncio.fixture
async def lavalink():
    stub = LavalinkStub()
    async with serve(stub.handler, "127.0.0.1", 0, process_request=stub.process_request) as server:
        port = server.sockets[0].getsockname()[1]
        stub.url = f"ws://127.0.0.1:{port}"
        yield stub


class TestWebSocketTransport:
    """Lifecycle of a single connection attempt."""

    @pytest.mark.asyncio
    async def test_open_and_echo(self, lavalink):
        transport = WebSocketTransport(lavalink.url)
        assert transport.state is State.CONNECTING

        await wait_for_event(transport, "open")
        assert transport.state is State.OPEN

        transport.send("ping")
        (message,) = await wait_for_event(transport, "message")
        assert message == "ping"

        await transport.send_reliable(b"\x00\x01")
        (message,) = await wait_for_event(transport, "message")
        assert message == b"\x00\x01"

        transport.close()
        code, reason = await wait_for_event(transport, "close")
        assert code == 1000
        assert transport.state is State.CLOSED

    @pytest.mark.asyncio
    async def test_upgrade_precedes_open(self, lavalink):
        transport = WebSocketTransport(lavalink.url)
        seen = record_events(transport, "upgrade", "open")

        await wait_for_event(transport, "open")

        assert [event for event, _ in seen] == ["upgrade", "open"]
        assert seen[0][1][0].status_code == 101
        transport.close()

    @pytest.mark.asyncio
    async def test_headers_reach_server(self, lavalink):
        transport = WebSocketTransport(
            lavalink.url,
            {"additional_headers": {"Authorization": "secret", "User-Id": USER_ID}},
        )
        await wait_for_event(transport, "open")

        headers = lavalink.requests[0].headers
        assert headers["Authorization"] == "secret"
        assert headers["User-Id"] == USER_ID
        transport.close()

    @pytest.mark.asyncio
    async def test_unexpected_response(self, lavalink):
        lavalink.reject_with = HTTPStatus.UNAUTHORIZED
        transport = WebSocketTransport(lavalink.url)
        seen = record_events(transport, "unexpected-response", "error", "open", "close")

        await wait_for_event(transport, "close")

        assert [event for event, _ in seen] == ["unexpected-response", "error", "close"]
        response = seen[0][1][0]
        assert response.status_code == 401
        error = seen[1][1][0]
        assert isinstance(error, TransportError)
        assert error.code == 401
        assert seen[2][1][0] == 1006
        assert transport.state is State.CLOSED

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        transport = WebSocketTransport(f"ws://127.0.0.1:{unused_port()}")
        seen = record_events(transport, "error", "close")

        await wait_for_event(transport, "close")

        assert [event for event, _ in seen] == ["error", "close"]
        assert isinstance(seen[0][1][0], TransportError)
        assert seen[1][1][0] == 1006

    @pytest.mark.asyncio
    async def test_close_before_open(self, lavalink):
        transport = WebSocketTransport(lavalink.url)
        seen = record_events(transport, "open", "close")

        transport.close()
        transport.close()
        await asyncio.sleep(0.1)

        assert seen == [
            ("close", (1006, "WebSocket was closed before the connection was established")),
        ]
        assert transport.state is State.CLOSED

    @pytest.mark.asyncio
    async def test_server_close_code_and_reason(self, lavalink):
        lavalink.close_with = (4000, "bye")
        transport = WebSocketTransport(lavalink.url)

        code, reason = await wait_for_event(transport, "close")

        assert (code, reason) == (4000, "bye")

    @pytest.mark.asyncio
    async def test_send_reliable_before_open_fails(self, lavalink):
        transport = WebSocketTransport(lavalink.url)

        with pytest.raises(TransportError, match="not open"):
            await transport.send_reliable("too early")
        transport.close()

    @pytest.mark.asyncio
    async def test_send_before_open_emits_error(self, lavalink):
        transport = WebSocketTransport(lavalink.url)
        errors = []
        transport.on("error", errors.append)

        transport.send("too early")
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert len(errors) == 1
        assert isinstance(errors[0], TransportError)
        transport.close()


class TestManagerOverWebSocket:
    """ConnectionManager with the real transport."""

    @pytest.mark.asyncio
    async def test_connects_and_relays_messages(self, lavalink):
        manager = ConnectionManager(lavalink.url, USER_ID, 1, "secret")

        await wait_for_event(manager, "open")
        assert manager.state is ConnectionState.CONNECTED
        assert lavalink.requests[0].headers["Num-Shards"] == "1"

        manager.send('{"op":"ping"}')
        (message,) = await wait_for_event(manager, "message")
        assert message == '{"op":"ping"}'

        manager.close(permanent=True)
        await wait_for_event(manager, "close")
        assert manager.state is ConnectionState.PERMANENTLY_CLOSED

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        manager = ConnectionManager(
            f"ws://127.0.0.1:{unused_port()}",
            USER_ID,
            1,
            "secret",
            {"retries": 2, "retry_timeout_ms": 10, "retry_timeout_multiplier": 0},
        )

        (error,) = await wait_for_event(manager, "max-retries-reached")

        assert isinstance(error, RetryExhaustedError)
        assert manager.connection_attempts == 3
        assert manager.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_reconnects_after_server_close(self, lavalink):
        lavalink.close_with = (4001, "restart")
        manager = ConnectionManager(
            lavalink.url, USER_ID, 1, "secret", {"retry_timeout_ms": 10}
        )

        await wait_for_event(manager, "close")
        lavalink.close_with = None
        await wait_for_event(manager, "open")

        assert manager.connection_attempts == 2
        assert manager.reconnect_state.attempts_used == 1
        manager.close(permanent=True)
