"""Re-segment a chunked byte stream into protocol lines."""

from __future__ import annotations

import codecs
import logging
from collections.abc import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"

RawChunk = bytes | str


class FrameReader:
    """Turns transport chunks into complete, LF-terminated lines.

    Chunk boundaries are arbitrary: a line may span several chunks and a
    chunk may hold several lines. The text after the last terminator is
    carried into the next pull. An unterminated tail left when the stream
    ends is dropped, never returned as a line.
    """

    def __init__(self, source: AsyncIterable[RawChunk], encoding: str = "utf-8"):
        self._chunks: AsyncIterator[RawChunk] = aiter(source)
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._carry = ""
        self._exhausted = False

    @property
    def pending(self) -> str:
        """Text received after the last line terminator."""
        return self._carry

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    async def pull(self) -> list[str] | None:
        """Read one chunk and return the lines it completed.

        Returns an empty list when the chunk completed no line, and None once
        the stream is exhausted. Transport errors propagate unchanged.
        """
        if self._exhausted:
            return None

        try:
            chunk = await anext(self._chunks)
        except StopAsyncIteration:
            self._finish()
            return None

        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk

        *lines, self._carry = (self._carry + text).split(LINE_TERMINATOR)
        return lines

    def _finish(self) -> None:
        self._exhausted = True
        tail = self._carry + self._decoder.decode(b"", final=True)
        if tail:
            logger.debug(f"Discarding unterminated fragment at end of stream ({len(tail)} chars)")
        self._carry = ""
