"""Reconnection policy: retry decisions and backoff math."""

from .config import ConnectionOptions
from .state import PERMANENTLY_DISABLED, ReconnectState


class ReconnectPolicy:
    """Decides whether to reconnect and how long to wait.

    Pure calculations over a ReconnectState. No I/O, no clock: the caller
    owns the timer and the mutation of the state.
    """

    def __init__(self, options: ConnectionOptions):
        self.options = options

    def initial_state(self) -> ReconnectState:
        """Fresh state for a new manager."""
        attempts = PERMANENTLY_DISABLED if self.options.retries_disabled else 0
        return ReconnectState(
            attempts_used=attempts,
            current_delay_ms=float(self.options.retry_timeout_ms),
        )

    def is_disabled(self, state: ReconnectState) -> bool:
        return state.attempts_used == PERMANENTLY_DISABLED

    def should_retry(self, state: ReconnectState) -> bool:
        """False if reconnection is disabled or one more attempt exceeds the budget."""
        if self.is_disabled(state):
            return False
        return state.attempts_used + 1 <= self.options.retries

    def next_delay(self, state: ReconnectState) -> float:
        """Delay that follows state.current_delay_ms."""
        # m == 0 keeps the delay flat at its base value
        return state.current_delay_ms * (1 + self.options.retry_timeout_multiplier)
