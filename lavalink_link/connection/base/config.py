"""Retry policy options for a managed connection."""

from dataclasses import dataclass, fields
from typing import Any, Mapping

from ..errors import ValidationError

# Names accepted by from_dict besides the field names themselves
_ALIASES = {
    "retryTimeout": "retry_timeout_ms",
    "retryTimeoutMs": "retry_timeout_ms",
    "retryTimeoutMultiplier": "retry_timeout_multiplier",
}


@dataclass(frozen=True)
class ConnectionOptions:
    """Retry policy for a connection.

    With retry_timeout_ms=2000 and retry_timeout_multiplier=2 the waits look like:
    closed -> wait 2000ms -> retry -> wait 6000ms -> retry -> wait 18000ms -> ...
    (each wait is the previous one times 1 + multiplier). A multiplier of 0
    keeps every wait at retry_timeout_ms.

    A negative retries value disables reconnection entirely.
    """

    retries: int = 3
    retry_timeout_ms: float = 2000.0
    retry_timeout_multiplier: float = 2.0

    def __post_init__(self):
        if isinstance(self.retries, bool) or not isinstance(self.retries, int):
            raise ValidationError("conn_options", "field 'retries' is not an integer")

        for name in ("retry_timeout_ms", "retry_timeout_multiplier"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError("conn_options", f"field '{name}' is not a number")
            if value != value:  # NaN
                raise ValidationError("conn_options", f"field '{name}' is NaN")

        if self.retry_timeout_ms <= 0:
            raise ValidationError(
                "conn_options", "field 'retry_timeout_ms' must be greater than 0"
            )
        if self.retry_timeout_multiplier < 0:
            raise ValidationError(
                "conn_options", "field 'retry_timeout_multiplier' must not be negative"
            )

    @property
    def retries_disabled(self) -> bool:
        return self.retries < 0

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ConnectionOptions":
        """Build options from a partial mapping, defaults filling the rest."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValidationError("conn_options", f"has unknown field '{key}'")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def coerce(cls, value: Any) -> "ConnectionOptions":
        """Accept None, a mapping or an existing instance."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise ValidationError("conn_options", "is not a mapping or ConnectionOptions")
