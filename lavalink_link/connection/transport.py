"""WebSocket transport used by the connection manager."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Protocol, Union

import websockets
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException
from websockets.protocol import State

from .errors import TransportError
from .events import EventEmitter, Listener

logger = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006

Payload = Union[str, bytes]


class Transport(Protocol):
    """What the manager needs from a transport.

    Notifications: 'upgrade', 'open', 'message', 'error', 'unexpected-response'
    and 'close' (code, reason). 'close' may fire without a preceding 'open';
    state is State.CLOSED by the time it fires.
    """

    @property
    def state(self) -> State: ...

    def send(self, payload: Payload) -> None: ...

    def send_reliable(self, payload: Payload) -> "asyncio.Future[None]": ...

    def close(self, code: int = 1000, reason: str = "") -> None: ...

    def on(self, event: str, fn: Optional[Listener] = None) -> Any: ...

    def once(self, event: str, fn: Listener) -> Listener: ...

    def off(self, event: str, fn: Listener) -> None: ...


TransportFactory = Callable[[str, dict], Transport]


class WebSocketTransport(EventEmitter):
    """One WebSocket connection attempt and its lifetime.

    Connecting starts as soon as the object is created, so it must be created
    inside a running event loop. Listener exceptions are not caught: they
    propagate into the reader task.
    """

    def __init__(self, url: str, options: Optional[dict] = None):
        super().__init__(isolate_listeners=False)
        self.url = url
        self.options = dict(options or {})
        self.ws: Any = None  # websockets ClientConnection once open
        self._state = State.CONNECTING
        self._close_emitted = False
        self._tasks: set[asyncio.Task] = set()
        self._loop = asyncio.get_running_loop()
        self._runner = self._loop.create_task(self._run())

    @property
    def state(self) -> State:
        return self._state

    async def _run(self) -> None:
        try:
            self.ws = await websockets.connect(self.url, **self.options)
        except InvalidStatus as e:
            status = e.response.status_code
            logger.warning(f"Unexpected response from {self.url}: HTTP {status}")
            self.emit("unexpected-response", e.response)
            self._fail(
                TransportError(
                    f"Unexpected server response: {status}",
                    code=status,
                    response=e.response,
                )
            )
            return
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.debug(f"Connection to {self.url} failed: {e}")
            self._fail(TransportError(f"Connection failed: {e}"))
            return

        self._state = State.OPEN
        logger.debug(f"Connected to {self.url}")
        self.emit("upgrade", self.ws.response)
        self.emit("open")

        try:
            async for message in self.ws:
                self.emit("message", message)
        except ConnectionClosed:
            pass

        self._finish(self.ws.close_code or ABNORMAL_CLOSURE, self.ws.close_reason or "")

    def _fail(self, error: TransportError) -> None:
        self._state = State.CLOSED
        self.emit("error", error)
        self._finish(ABNORMAL_CLOSURE, str(error))

    def _finish(self, code: int, reason: str) -> None:
        if self._close_emitted:
            return
        self._close_emitted = True
        self._state = State.CLOSED
        logger.debug(f"Connection to {self.url} closed: {code} {reason}")
        self.emit("close", code, reason)

    def send(self, payload: Payload) -> None:
        """Write payload without waiting. Failures are emitted as 'error'."""
        task = self.send_reliable(payload)
        task.add_done_callback(self._report_send_failure)

    def send_reliable(self, payload: Payload) -> "asyncio.Future[None]":
        """Write payload. The returned future fails with TransportError."""
        return self._spawn(self._write(payload))

    async def _write(self, payload: Payload) -> None:
        if self._state is not State.OPEN:
            raise TransportError(f"WebSocket is not open (state: {self._state.name})")
        try:
            await self.ws.send(payload)
        except ConnectionClosed as e:
            raise TransportError(f"Send failed: {e}") from e

    def _report_send_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.emit("error", error)

    def close(self, code: int = 1000, reason: str = "") -> None:
        """Start closing. 'close' is emitted once the connection is down."""
        if self._state in (State.CLOSING, State.CLOSED):
            return

        if self._state is State.CONNECTING:
            self._state = State.CLOSING
            self._runner.cancel()
            self._loop.call_soon(
                self._finish,
                ABNORMAL_CLOSURE,
                "WebSocket was closed before the connection was established",
            )
            return

        self._state = State.CLOSING
        self._spawn(self.ws.close(code, reason))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __repr__(self) -> str:
        return f"<WebSocketTransport {self.url} {self._state.name}>"
