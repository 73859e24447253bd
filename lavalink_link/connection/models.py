"""Validated connection parameters."""

import re
from typing import Any, Optional

import pydantic
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    InstanceOf,
    StrictInt,
    StrictStr,
    field_validator,
)

from .base.config import ConnectionOptions
from .errors import ValidationError

WS_URL_RE = re.compile(r"^wss?://[^\s/?#]+")
SNOWFLAKE_RE = re.compile(r"^\d+$")

# Field name -> constructor argument name, for error messages
_ARGUMENTS = {
    "address": "address",
    "user_id": "user_id",
    "shards": "shards",
    "password": "password",
    "client_name": "client_name",
    "options": "conn_options",
}


class ConnectionConfig(BaseModel):
    """Immutable parameters of one Lavalink connection."""

    model_config = ConfigDict(frozen=True)

    address: StrictStr  # WebSocket URL to the server
    user_id: StrictStr  # User ID of the bot
    shards: StrictInt = Field(ge=1)  # Number of shards of the bot
    password: StrictStr = Field(min_length=1)  # Used to authenticate with the server
    client_name: StrictStr = Field(default="lavalink-link", min_length=1)
    options: InstanceOf[ConnectionOptions] = Field(default_factory=ConnectionOptions)

    @field_validator("address")
    @classmethod
    def check_address(cls, value: str) -> str:
        if not WS_URL_RE.match(value):
            raise ValueError("is not a valid WebSocket URL")
        return value

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, value: str) -> str:
        if not SNOWFLAKE_RE.match(value):
            raise ValueError("is not a valid Discord ID")
        return value

    @classmethod
    def build(
        cls,
        address: Any,
        user_id: Any,
        shards: Any,
        password: Any,
        conn_options: Any = None,
        client_name: Optional[str] = None,
    ) -> "ConnectionConfig":
        """Validate raw constructor arguments.

        Raises ValidationError naming the first offending argument.
        """
        options = ConnectionOptions.coerce(conn_options)
        values = {
            "address": address,
            "user_id": user_id,
            "shards": shards,
            "password": password,
            "options": options,
        }
        if client_name is not None:
            values["client_name"] = client_name

        try:
            return cls(**values)
        except pydantic.ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "config"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            raise ValidationError(_ARGUMENTS.get(field, field), message) from None

    def handshake_headers(self) -> dict[str, str]:
        """HTTP headers Lavalink expects on the WebSocket upgrade request."""
        return {
            "Authorization": self.password,
            "User-Id": self.user_id,
            "Num-Shards": str(self.shards),
            "Client-Name": self.client_name,
        }
