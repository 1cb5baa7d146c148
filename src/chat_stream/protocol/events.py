"""Event definitions for the chat streaming protocol.

Every meaningful wire line is a `data: ` line carrying either the literal
terminator token or a JSON envelope:

    data: {"type": "chunk", "data": {"text": "Hel"}}
    data: {"type": "chunk", "data": {"type": "artifact", "artifact": {...}}}
    data: {"type": "chunk", "data": {"type": "build", "buildResult": {...}}}
    data: {"type": "metadata", "data": {"conversationId": "c1", "messageId": "m1"}}
    data: {"type": "error", "data": {"error": "quota exceeded"}}
    data: [DONE]

The envelope `type` is the discriminator. Decoded events are pydantic models
tagged by a `kind` literal so callers can match on it.

Note: wire field names are camelCase (and `s3Key`/`s3Url` for storage);
models expose snake_case names and accept the wire names as aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DATA_PREFIX = "data: "
TERMINATOR = "[DONE]"
DEFAULT_ERROR_MESSAGE = "Stream error occurred"


class EnvelopeType(str, Enum):
    """Values of the top-level `type` discriminator."""

    CHUNK = "chunk"
    METADATA = "metadata"
    ERROR = "error"
    COMPLETE = "complete"


class ChunkType(str, Enum):
    """Values of the nested `data.type` field inside `chunk` envelopes."""

    ARTIFACT = "artifact"
    BUILD = "build"
    BUILD_ERROR = "build-error"
    SECURITY = "security"
    CONNECTION = "connection"


class WireModel(BaseModel):
    """Base model accepting both wire (camelCase) and Python field names."""

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Events
# =============================================================================


class TextDelta(WireModel):
    """Incremental fragment of the assistant's reply."""

    kind: Literal["text"] = "text"
    text: str


class ArtifactProduced(WireModel):
    """A generated file or code artifact became available."""

    kind: Literal["artifact"] = "artifact"
    id: str
    title: str
    language: str
    artifact_type: str = Field(alias="type")
    storage_key: str = Field(alias="s3Key")
    storage_url: str = Field(alias="s3Url")
    size_bytes: int = Field(validation_alias=AliasChoices("size", "fileSize", "size_bytes"))


class BuildStatus(WireModel):
    """Progress of the build step associated with an artifact."""

    kind: Literal["build"] = "build"
    status: str
    message: str | None = None
    build_id: str | None = Field(default=None, alias="buildId")


class SecurityReport(WireModel):
    """Result of the producer's security scan of the reply."""

    kind: Literal["security"] = "security"
    is_secure: bool = Field(alias="isSecure")
    risk_level: str = Field(alias="riskLevel")
    score: float
    issues: int = 0


class ConnectionOpened(WireModel):
    """First event of a stream, announcing producer capabilities."""

    kind: Literal["connection"] = "connection"
    session_id: str | None = Field(default=None, alias="sessionId")
    message: str | None = None
    capabilities: dict[str, Any] = Field(default_factory=dict)


class Metadata(WireModel):
    """Conversation identifiers for the reply being streamed."""

    kind: Literal["metadata"] = "metadata"
    conversation_id: str = Field(alias="conversationId")
    message_id: str | None = Field(default=None, alias="messageId")


class StreamCompleted(WireModel):
    """Producer-side completion notice. Informational, not a terminator."""

    kind: Literal["complete"] = "complete"
    reason: str | None = None
    conversation_id: str | None = Field(default=None, alias="conversationId")
    message_id: str | None = Field(default=None, alias="messageId")


class ErrorEvent(WireModel):
    """Explicit fatal error reported by the producer."""

    kind: Literal["error"] = "error"
    message: str = DEFAULT_ERROR_MESSAGE


class Done(WireModel):
    """Explicit terminator. Nothing after it is read."""

    kind: Literal["done"] = "done"


class Ignored(WireModel):
    """Parse outcome for lines that carry no event."""

    kind: Literal["ignored"] = "ignored"
    reason: str


StreamEvent = Union[
    TextDelta,
    ArtifactProduced,
    BuildStatus,
    SecurityReport,
    ConnectionOpened,
    Metadata,
    StreamCompleted,
    ErrorEvent,
    Done,
]

ParseResult = Union[StreamEvent, Ignored]


class DecodeResult(WireModel):
    """Identifiers accumulated from the stream's metadata event."""

    conversation_id: str = Field(alias="conversationId")
    message_id: str | None = Field(default=None, alias="messageId")
