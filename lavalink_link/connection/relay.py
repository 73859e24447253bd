"""Event relays: forward events from a transport to a stable public emitter.

A relay is a named callable subscribed on a source emitter. Every relay
carries a readable label (source + event name, plus the tap function for
taps). The label is set as the callable's __name__ and __qualname__ and is
used in log lines when a tap fails.

Note: a tap runs its function AFTER the event has been re-emitted and runs
it SYNCHRONOUSLY. Exceptions raised by the tap function are logged and then
re-raised; they are not swallowed here.
"""

import logging
from typing import Any, Callable, Optional

from .events import EventEmitter

logger = logging.getLogger(__name__)


def _check_args(event: Any, target: Any, source: Any) -> None:
    if not isinstance(event, str) or not event:
        raise TypeError("Argument 'event' is not a string")
    if not isinstance(target, EventEmitter):
        raise TypeError("Argument 'target' is not an instance of 'EventEmitter'")
    if source is not None and not isinstance(source, str):
        raise TypeError("Argument 'source' is not None or a string")


def event_label(event: str, source: Optional[str] = None) -> str:
    if source:
        return f"'{source}' -> Event: '{event}'"
    return f"Event: '{event}'"


class EventPropagator:
    """Re-emits event on target with the same arguments in the same order."""

    def __init__(self, event: str, target: EventEmitter, source: Optional[str] = None):
        _check_args(event, target, source)
        self.event = event
        self.target = target
        self.source = source
        self.label = event_label(event, source)
        self.__name__ = self.__qualname__ = self.label

    def __call__(self, *args: Any) -> bool:
        return self.target.emit(self.event, *args)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"


class EventTap(EventPropagator):
    """Propagator that also calls fn(*args) once the event has been emitted."""

    def __init__(
        self,
        event: str,
        target: EventEmitter,
        fn: Callable[..., Any],
        source: Optional[str] = None,
    ):
        if not callable(fn):
            raise TypeError("Argument 'fn' is not callable")
        super().__init__(event, target, source)
        self.fn = fn
        fn_name = getattr(fn, "__name__", None) or "anonymous"
        self.label = f"{self.label} => Tap '{fn_name}'"
        self.__name__ = self.__qualname__ = self.label

    def __call__(self, *args: Any) -> bool:
        handled = self.target.emit(self.event, *args)
        try:
            self.fn(*args)
        except Exception as e:
            logger.error(f"[{self.label}] Tap failed: {type(e).__name__}: {e}")
            raise
        return handled


class RelaySet:
    """Relays bound to one source emitter, removable as a group."""

    def __init__(self, source: EventEmitter):
        self.source = source
        self._bound: list[tuple[str, EventPropagator]] = []

    def bind(self, relay: EventPropagator, source_event: Optional[str] = None, once: bool = False) -> None:
        """Subscribe relay on the source, by default under the relay's own event name."""
        source_event = source_event or relay.event
        if once:
            self.source.once(source_event, relay)
        else:
            self.source.on(source_event, relay)
        self._bound.append((source_event, relay))

    def unbind(self) -> None:
        """Detach every relay from the source."""
        for source_event, relay in self._bound:
            self.source.off(source_event, relay)
        self._bound.clear()

    def __len__(self) -> int:
        return len(self._bound)
