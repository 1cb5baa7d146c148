"""Classify protocol lines into typed events.

Parsing is total: every line yields either an event or an explicit
`Ignored` outcome. Malformed payloads are tolerated, but a payload whose
discriminator says "error" always yields an `ErrorEvent`, even when its body
cannot be read.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from .events import (
    DATA_PREFIX,
    DEFAULT_ERROR_MESSAGE,
    TERMINATOR,
    ArtifactProduced,
    BuildStatus,
    ChunkType,
    ConnectionOpened,
    Done,
    EnvelopeType,
    ErrorEvent,
    Ignored,
    Metadata,
    ParseResult,
    SecurityReport,
    StreamCompleted,
    TextDelta,
)

logger = logging.getLogger(__name__)


def parse_line(line: str) -> ParseResult:
    """Parse one protocol line into an event or an `Ignored` outcome."""
    line = line.removesuffix("\r")
    if not line.startswith(DATA_PREFIX):
        return Ignored(reason="not a data line")

    payload = line[len(DATA_PREFIX) :]
    if payload == TERMINATOR:
        return Done()

    try:
        envelope = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse SSE data: {e}")
        return Ignored(reason="invalid JSON")

    if not isinstance(envelope, dict):
        logger.warning(f"Ignoring non-object SSE payload: {payload[:80]}")
        return Ignored(reason="payload is not an object")

    event_type = envelope.get("type")
    data = envelope.get("data")

    if event_type == EnvelopeType.ERROR.value:
        return _parse_error(data)

    if not isinstance(data, dict):
        logger.warning(f"Ignoring '{event_type}' event without a data object")
        return Ignored(reason="missing data object")

    try:
        if event_type == EnvelopeType.CHUNK.value:
            return _parse_chunk(data)
        if event_type == EnvelopeType.METADATA.value:
            if not data.get("conversationId"):
                return Ignored(reason="metadata without conversationId")
            return Metadata.model_validate(data)
        if event_type == EnvelopeType.COMPLETE.value:
            return StreamCompleted.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid '{event_type}' event: {e.error_count()} validation error(s)")
        return Ignored(reason=f"invalid {event_type} event")

    logger.debug(f"Ignoring unrecognized event type: {event_type!r}")
    return Ignored(reason=f"unrecognized event type {event_type!r}")


def _parse_error(data: Any) -> ErrorEvent:
    """Build an error event, falling back to a generic message."""
    message = data.get("error") if isinstance(data, dict) else None
    if not isinstance(message, str) or not message:
        message = DEFAULT_ERROR_MESSAGE
    return ErrorEvent(message=message)


def _parse_chunk(data: dict[str, Any]) -> ParseResult:
    """Classify a `chunk` envelope by its content.

    Text takes precedence over the nested `data.type` marker.
    """
    text = data.get("text")
    if isinstance(text, str) and text:
        return TextDelta(text=text)

    chunk_type = data.get("type")
    if chunk_type == ChunkType.ARTIFACT.value:
        return ArtifactProduced.model_validate(data.get("artifact"))
    if chunk_type == ChunkType.BUILD.value:
        return _build_status(data.get("buildResult"))
    if chunk_type == ChunkType.BUILD_ERROR.value:
        return BuildStatus(status="failed", message=data.get("error") or "Build failed")
    if chunk_type == ChunkType.SECURITY.value:
        return SecurityReport.model_validate(data)
    if chunk_type == ChunkType.CONNECTION.value:
        return ConnectionOpened.model_validate(data)

    return Ignored(reason=f"unrecognized chunk type {chunk_type!r}")


def _build_status(result: Any) -> BuildStatus:
    """Normalize a build result into a `BuildStatus`.

    Producers send either `{status, message, buildId}` or the bundler's raw
    `{success, artifactId, errors, ...}` shape.
    """
    if not isinstance(result, dict) or "status" in result:
        return BuildStatus.model_validate(result)

    success = result.get("success")
    if success is None:
        return BuildStatus.model_validate(result)

    errors = result.get("errors") or []
    return BuildStatus(
        status="success" if success else "failed",
        message=result.get("message") or ("; ".join(str(e) for e in errors) or None),
        build_id=result.get("buildId") or result.get("artifactId"),
    )
