"""Exception types raised by the stream decoder and client.

Transport failures (httpx errors, ConnectionError, ...) are never wrapped;
they reach the caller exactly as the transport raised them.
"""

from __future__ import annotations


class StreamDecodeError(Exception):
    """Base class for decoder errors."""


class StreamProtocolError(StreamDecodeError):
    """The producer sent an explicit error event."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StreamHandlerError(StreamDecodeError):
    """A registered handler raised while an event was being dispatched."""

    def __init__(self, event_kind: str, cause: BaseException):
        super().__init__(f"Handler for '{event_kind}' failed: {cause}")
        self.event_kind = event_kind


class SessionStateError(StreamDecodeError):
    """A session was used outside its single-use lifecycle."""


class ChatRequestError(StreamDecodeError):
    """The chat endpoint rejected the request before streaming began."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
