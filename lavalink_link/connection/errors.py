"""Exceptions raised and emitted by the connection layer."""

from typing import Any, Optional


class LavalinkLinkError(Exception):
    """Base class for all connection errors."""


class ValidationError(LavalinkLinkError, ValueError):
    """Malformed constructor argument. Raised before any connection attempt."""

    def __init__(self, argument: str, message: str):
        super().__init__(f"Argument '{argument}' {message}")
        self.argument = argument


class TransportError(LavalinkLinkError):
    """Failure reported by the transport. Emitted as an 'error' event, never raised."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.response = response


class RetryExhaustedError(LavalinkLinkError):
    """Payload of the 'max-retries-reached' event."""

    def __init__(self, attempts: int, max_retries: int):
        super().__init__(f"Max retries reached (retries: {max_retries})")
        self.attempts = attempts  # attempts_used at the time of exhaustion
        self.max_retries = max_retries
