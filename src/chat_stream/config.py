"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "http://localhost:5001"


@dataclass
class ClientConfig:
    """Configuration for the chat streaming client.

    Environment overrides (see `from_env`):
    - CHAT_STREAM_API_URL: server base URL
    - CHAT_STREAM_TOKEN: bearer token sent with every request
    - CHAT_STREAM_TIMEOUT: connect/write timeout in seconds
    """

    base_url: str = DEFAULT_BASE_URL
    token: str | None = None

    # Applies to connect/write/pool. Reads never time out: a reply may pause
    # for a long time while the producer builds artifacts.
    timeout: float = 30.0

    chat_endpoint: str = "/api/chat/send"
    regenerate_endpoint: str = "/api/chat/regenerate/{message_id}"

    # Request flags forwarded to the producer
    enable_security: bool = True
    enable_building: bool = True
    enable_preview: bool = True

    @classmethod
    def from_env(cls, **overrides: object) -> ClientConfig:
        """Build a config from the environment; explicit overrides win."""
        values: dict[str, object] = {}
        if base_url := os.getenv("CHAT_STREAM_API_URL"):
            values["base_url"] = base_url
        if token := os.getenv("CHAT_STREAM_TOKEN"):
            values["token"] = token
        if timeout := os.getenv("CHAT_STREAM_TIMEOUT"):
            try:
                values["timeout"] = float(timeout)
            except ValueError as e:
                raise ValueError(f"CHAT_STREAM_TIMEOUT must be a number, got {timeout!r}") from e
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}
