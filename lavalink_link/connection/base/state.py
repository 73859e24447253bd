"""Connection state management."""

import asyncio
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

# attempts_used value meaning "never reconnect again"
PERMANENTLY_DISABLED = -1


class ConnectionState(Enum):
    """Lifecycle states of a managed connection."""

    CONNECTING = auto()
    CONNECTED = auto()
    RECONNECT_SCHEDULED = auto()
    RECONNECTING_NOW = auto()
    DISCONNECTED = auto()  # torn down after the retry budget ran out
    PERMANENTLY_CLOSED = auto()

    def __str__(self) -> str:
        return self.name


@dataclass
class ReconnectState:
    """Reconnection bookkeeping owned by a single ConnectionManager."""

    attempts_used: int
    current_delay_ms: float
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def disabled(self) -> bool:
        return self.attempts_used == PERMANENTLY_DISABLED

    @property
    def pending(self) -> bool:
        """Whether a reconnect timer is armed."""
        return self.timer is not None and not self.timer.cancelled()

    def cancel_timer(self) -> bool:
        """Cancel the armed timer, if any. Returns True if one was cancelled."""
        timer, self.timer = self.timer, None
        if timer is None or timer.cancelled():
            return False
        timer.cancel()
        return True
