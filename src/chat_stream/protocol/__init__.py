"""Wire protocol: event models and line parser."""

from .events import (
    DATA_PREFIX,
    TERMINATOR,
    ArtifactProduced,
    BuildStatus,
    ConnectionOpened,
    DecodeResult,
    Done,
    ErrorEvent,
    Ignored,
    Metadata,
    ParseResult,
    SecurityReport,
    StreamCompleted,
    StreamEvent,
    TextDelta,
)
from .parser import parse_line

__all__ = [
    "DATA_PREFIX",
    "TERMINATOR",
    "ArtifactProduced",
    "BuildStatus",
    "ConnectionOpened",
    "DecodeResult",
    "Done",
    "ErrorEvent",
    "Ignored",
    "Metadata",
    "ParseResult",
    "SecurityReport",
    "StreamCompleted",
    "StreamEvent",
    "TextDelta",
    "parse_line",
]
