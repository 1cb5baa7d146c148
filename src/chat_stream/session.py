"""Session controller: one read loop over one streamed response.

State machine:

    OPEN --run()--> READING --+--> COMPLETED   terminator or end of stream
                              +--> FAILED      error event, transport or handler failure
    (any non-terminal state) --abandon() or task cancel--> ABANDONED

The stream resource is released exactly once, on every exit path, before
control returns to the caller.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, Awaitable, Callable
from enum import Enum
from typing import Any

from .dispatcher import Dispatcher, StreamHandlers
from .errors import SessionStateError
from .protocol.events import DecodeResult, Ignored
from .protocol.parser import parse_line
from .reader import FrameReader, RawChunk

logger = logging.getLogger(__name__)

ReleaseFn = Callable[[], Awaitable[Any]]


class SessionState(str, Enum):
    """Lifecycle of a stream session."""

    OPEN = "open"
    READING = "reading"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


_FINAL_STATES = (SessionState.COMPLETED, SessionState.FAILED, SessionState.ABANDONED)


class StreamSession:
    """Decodes a single streamed chat response.

    Usage:
        session = StreamSession(response.aiter_bytes(), handlers, release=response.aclose)
        result = await session.run()

    or scoped, so the stream is released even if `run()` is never awaited:

        async with StreamSession(chunks, handlers) as session:
            result = await session.run()

    A session is single-use; calling `run()` twice raises SessionStateError.
    """

    def __init__(
        self,
        source: AsyncIterable[RawChunk],
        handlers: StreamHandlers,
        release: ReleaseFn | None = None,
        encoding: str = "utf-8",
    ):
        self._source = source
        self._reader = FrameReader(source, encoding=encoding)
        self._dispatcher = Dispatcher(handlers)
        self._release_fn = release
        self._released = False
        self._state = SessionState.OPEN
        self._task: asyncio.Task[Any] | None = None
        self._lines = 0
        self._ignored = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def released(self) -> bool:
        return self._released

    @property
    def result(self) -> DecodeResult | None:
        """Metadata accumulated so far."""
        return self._dispatcher.result

    @property
    def stats(self) -> dict[str, int]:
        """Counters for diagnostics."""
        return {
            "lines": self._lines,
            "ignored": self._ignored,
            "dispatched": self._dispatcher.dispatched,
        }

    async def run(self) -> DecodeResult | None:
        """Run the read loop until a terminal condition.

        Returns:
            The accumulated metadata, or None if the stream carried none.

        If releasing the stream fails after a successful read, the release
        error propagates; the session stays COMPLETED and `result` still
        holds the decoded metadata.

        Raises:
            StreamProtocolError: the producer sent an error event.
            StreamHandlerError: a handler raised during dispatch.
            asyncio.CancelledError: the session was abandoned.
            Any exception raised by the transport while reading.
        """
        if self._state is not SessionState.OPEN:
            raise SessionStateError(f"Session cannot be run in state '{self._state.value}'")

        self._state = SessionState.READING
        self._task = asyncio.current_task()
        try:
            await self._read_loop()
        except asyncio.CancelledError as e:
            # Task cancellation is abandonment, whoever triggered it.
            self._state = SessionState.ABANDONED
            await self._release_after(e)
            raise
        except Exception as e:
            self._state = SessionState.FAILED
            logger.debug(f"Stream session failed: {e!r}")
            await self._release_after(e)
            raise
        finally:
            self._task = None

        # State is final before release so abandon() cannot overwrite it.
        self._state = SessionState.COMPLETED
        logger.debug(f"Stream session completed: {self.stats}")
        await self._release()
        return self._dispatcher.result

    async def _release_after(self, error: BaseException) -> None:
        """Release on a failure path without masking `error`."""
        try:
            await self._release()
        except Exception as e:
            logger.warning(f"Failed to release stream after {type(error).__name__}: {e!r}")
            error.add_note(f"stream release also failed: {e!r}")

    async def _read_loop(self) -> None:
        while True:
            lines = await self._reader.pull()
            if lines is None:
                logger.debug("Stream ended without terminator")
                return

            for line in lines:
                if self._state is SessionState.ABANDONED:
                    raise asyncio.CancelledError()

                self._lines += 1
                event = parse_line(line)
                if isinstance(event, Ignored):
                    self._ignored += 1
                    continue

                if not await self._dispatcher.dispatch(event):
                    logger.debug("Stream terminator received")
                    return

            if self._state is SessionState.ABANDONED:
                raise asyncio.CancelledError()

    async def abandon(self) -> None:
        """Stop reading and release the stream without completing or failing.

        Safe to call from another task, from inside a handler, or before
        `run()` was ever started. Has no effect once the session has ended.
        """
        if self._state in _FINAL_STATES:
            return

        self._state = SessionState.ABANDONED
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        # Called from a handler: the loop sees ABANDONED before its next pull.
        await self._release()
        logger.debug("Stream session abandoned")

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True

        if self._release_fn is not None:
            await self._release_fn()
            return

        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> StreamSession:
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._state in (SessionState.OPEN, SessionState.READING):
            await self.abandon()
        else:
            await self._release()


async def decode_stream(
    source: AsyncIterable[RawChunk],
    handlers: StreamHandlers,
    release: ReleaseFn | None = None,
) -> DecodeResult | None:
    """Decode one streamed response in a single call."""
    session = StreamSession(source, handlers, release=release)
    return await session.run()
