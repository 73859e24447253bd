"""Minimal multi-subscriber event emitter."""

import inspect
import logging
from collections import defaultdict
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """String-keyed event emitter.

    Listeners run synchronously, in registration order, on a snapshot of the
    listener list taken when emit() starts.

    With isolate_listeners=True a failing listener is logged and the remaining
    listeners still run. With isolate_listeners=False the exception propagates
    out of emit() to whoever triggered the event.
    """

    def __init__(self, isolate_listeners: bool = True):
        self._listeners: dict[str, list[tuple[Listener, bool]]] = defaultdict(list)
        self._isolate_listeners = isolate_listeners

    def on(self, event: str, fn: Optional[Listener] = None):
        """Subscribe fn to event. Without fn, works as a decorator."""
        if fn is None:

            def decorator(func: Listener) -> Listener:
                self._add(event, func, once=False)
                return func

            return decorator

        self._add(event, fn, once=False)
        return fn

    def once(self, event: str, fn: Listener) -> Listener:
        """Subscribe fn for the next emission of event only."""
        self._add(event, fn, once=True)
        return fn

    def off(self, event: str, fn: Listener) -> None:
        """Remove the first registration of fn. No-op if fn is not subscribed."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        for i, (listener, _) in enumerate(listeners):
            if listener == fn:
                del listeners[i]
                break
        if not listeners:
            del self._listeners[event]

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of event with args. Returns True if there were any."""
        listeners = list(self._listeners.get(event, ()))
        if not listeners:
            return False

        for entry in listeners:
            fn, once = entry
            if once:
                current = self._listeners.get(event)
                if current is None or entry not in current:
                    continue  # already consumed by a nested emit
                current.remove(entry)
                if not current:
                    del self._listeners[event]
            if not self._isolate_listeners:
                fn(*args)
                continue
            try:
                fn(*args)
            except Exception as e:
                logger.error(
                    f"Listener {getattr(fn, '__name__', fn)!r} for '{event}' "
                    f"failed: {type(e).__name__}: {e}",
                    exc_info=True,
                )
        return True

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def _add(self, event: str, fn: Listener, once: bool) -> None:
        if not isinstance(event, str) or not event:
            raise TypeError("Argument 'event' is not a non-empty string")
        if not callable(fn):
            raise TypeError("Argument 'fn' is not callable")
        if inspect.iscoroutinefunction(fn):
            raise TypeError(
                f"Listener {fn.__name__} is a coroutine function. "
                f"Listeners must be synchronous; schedule async work with "
                f"asyncio.create_task() instead."
            )
        self._listeners[event].append((fn, once))
