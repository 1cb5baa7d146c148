"""Route decoded events to caller-supplied handlers."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .errors import StreamHandlerError, StreamProtocolError
from .protocol.events import (
    ArtifactProduced,
    BuildStatus,
    ConnectionOpened,
    DecodeResult,
    Done,
    ErrorEvent,
    Metadata,
    SecurityReport,
    StreamCompleted,
    StreamEvent,
    TextDelta,
)

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutine functions.
Handler = Callable[[Any], Awaitable[None] | None]


@dataclass
class StreamHandlers:
    """Handler slots recognized by the dispatcher.

    Only `on_text` is required. Events whose slot is empty are dropped.
    Metadata, errors and the terminator never reach a handler: metadata is
    accumulated into the session result, the other two end the session.
    """

    on_text: Callable[[str], Awaitable[None] | None]
    on_artifact: Callable[[ArtifactProduced], Awaitable[None] | None] | None = None
    on_build: Callable[[BuildStatus], Awaitable[None] | None] | None = None
    on_security: Callable[[SecurityReport], Awaitable[None] | None] | None = None
    on_connection: Callable[[ConnectionOpened], Awaitable[None] | None] | None = None
    on_complete: Callable[[StreamCompleted], Awaitable[None] | None] | None = None

    def __post_init__(self) -> None:
        if not callable(self.on_text):
            raise TypeError("on_text handler is required")


class Dispatcher:
    """Delivers events in arrival order and accumulates the decode result.

    A handler returning an awaitable is awaited before the next event is
    dispatched, so handler invocations never overlap or reorder.
    """

    def __init__(self, handlers: StreamHandlers):
        self._handlers = handlers
        self._result: DecodeResult | None = None
        self._dispatched = 0

    @property
    def result(self) -> DecodeResult | None:
        return self._result

    @property
    def dispatched(self) -> int:
        """Number of handler invocations issued so far."""
        return self._dispatched

    async def dispatch(self, event: StreamEvent) -> bool:
        """Dispatch one event.

        Returns False when the event terminates the stream.

        Raises:
            StreamProtocolError: the event is an explicit error.
            StreamHandlerError: the registered handler raised.
        """
        if isinstance(event, Done):
            return False

        if isinstance(event, ErrorEvent):
            raise StreamProtocolError(event.message)

        if isinstance(event, Metadata):
            if self._result is not None:
                logger.warning(
                    f"Duplicate metadata event; replacing conversation "
                    f"{self._result.conversation_id} with {event.conversation_id}"
                )
            self._result = DecodeResult(
                conversation_id=event.conversation_id,
                message_id=event.message_id,
            )
            return True

        handler, arg = self._route(event)
        if handler is None:
            logger.debug(f"No handler registered for '{event.kind}' event")
            return True

        self._dispatched += 1
        try:
            outcome = handler(arg)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            raise StreamHandlerError(event.kind, e) from e
        return True

    def _route(self, event: StreamEvent) -> tuple[Handler | None, Any]:
        h = self._handlers
        if isinstance(event, TextDelta):
            return h.on_text, event.text
        if isinstance(event, ArtifactProduced):
            return h.on_artifact, event
        if isinstance(event, BuildStatus):
            return h.on_build, event
        if isinstance(event, SecurityReport):
            return h.on_security, event
        if isinstance(event, ConnectionOpened):
            return h.on_connection, event
        if isinstance(event, StreamCompleted):
            return h.on_complete, event
        return None, None
