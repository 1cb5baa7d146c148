"""chat-stream - client-side decoder for streamed assistant replies.

Layers, leaf first:
- reader: re-segments transport chunks into protocol lines
- protocol: typed events and the line parser
- dispatcher: routes events to caller handlers in arrival order
- session: owns the read loop, termination and stream release
- client: httpx transport for the chat API
"""

from .client import ChatClient
from .config import ClientConfig
from .dispatcher import Dispatcher, StreamHandlers
from .errors import (
    ChatRequestError,
    SessionStateError,
    StreamDecodeError,
    StreamHandlerError,
    StreamProtocolError,
)
from .protocol import (
    ArtifactProduced,
    BuildStatus,
    ConnectionOpened,
    DecodeResult,
    Done,
    ErrorEvent,
    Ignored,
    Metadata,
    SecurityReport,
    StreamCompleted,
    StreamEvent,
    TextDelta,
    parse_line,
)
from .reader import FrameReader
from .session import SessionState, StreamSession, decode_stream

__all__ = [
    # Decoding
    "StreamSession",
    "SessionState",
    "StreamHandlers",
    "decode_stream",
    "Dispatcher",
    "FrameReader",
    "parse_line",
    # Events
    "StreamEvent",
    "TextDelta",
    "ArtifactProduced",
    "BuildStatus",
    "SecurityReport",
    "ConnectionOpened",
    "Metadata",
    "StreamCompleted",
    "ErrorEvent",
    "Done",
    "Ignored",
    "DecodeResult",
    # Errors
    "StreamDecodeError",
    "StreamProtocolError",
    "StreamHandlerError",
    "SessionStateError",
    "ChatRequestError",
    # Client
    "ChatClient",
    "ClientConfig",
]
