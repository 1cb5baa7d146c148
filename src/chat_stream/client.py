"""HTTP client that streams chat replies through the decoder.

The client owns the request: it posts the message, checks the status, and
hands the response body to a `StreamSession`. Everything after the status
check is the decoder's job.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from .config import ClientConfig
from .dispatcher import StreamHandlers
from .errors import ChatRequestError
from .protocol.events import DecodeResult
from .session import StreamSession

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_ERROR = "Failed to send message"


class ChatClient:
    """Streams assistant replies from the chat API.

    Usage:
        async with ChatClient(ClientConfig.from_env()) as client:
            result = await client.stream_message("hello", StreamHandlers(on_text=print))
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or ClientConfig()
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout, read=None),
        )

    async def stream_message(
        self,
        message: str,
        handlers: StreamHandlers,
        conversation_id: str | None = None,
    ) -> DecodeResult | None:
        """Send a message and stream the reply into `handlers`."""
        body: dict[str, Any] = {
            "message": message,
            "stream": True,
            "enableSecurity": self.config.enable_security,
            "enableBuilding": self.config.enable_building,
            "enablePreview": self.config.enable_preview,
        }
        if conversation_id:
            body["conversationId"] = conversation_id
        return await self._stream(self.config.chat_endpoint, body, handlers)

    async def regenerate_message(
        self,
        message_id: str,
        handlers: StreamHandlers,
    ) -> DecodeResult | None:
        """Regenerate an assistant message and stream the new reply."""
        endpoint = self.config.regenerate_endpoint.format(message_id=message_id)
        return await self._stream(endpoint, {"stream": True}, handlers)

    async def _stream(
        self,
        endpoint: str,
        body: dict[str, Any],
        handlers: StreamHandlers,
    ) -> DecodeResult | None:
        headers = {"Accept": "text/event-stream", **self.config.auth_headers()}
        request = self._http_client.build_request("POST", endpoint, json=body, headers=headers)
        response = await self._http_client.send(request, stream=True)

        if response.is_error:
            try:
                await response.aread()
            finally:
                await response.aclose()
            raise ChatRequestError(_error_message(response), status_code=response.status_code)

        logger.debug(f"Streaming reply from {endpoint}")
        session = StreamSession(response.aiter_bytes(), handlers, release=response.aclose)
        return await session.run()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


def _error_message(response: httpx.Response) -> str:
    """Extract the server's error message from a rejected request."""
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return DEFAULT_REQUEST_ERROR
    if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
        return data["message"]
    return DEFAULT_REQUEST_ERROR
