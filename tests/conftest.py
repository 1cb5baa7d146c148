"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from chat_stream.dispatcher import StreamHandlers


class ChunkSource:
    """In-memory stand-in for a transport body stream.

    Yields the given chunks in order, then either ends, raises `error`, or
    (with `hang=True`) blocks until cancelled. Records pulls and closes.
    """

    def __init__(
        self,
        chunks: list[bytes | str],
        error: BaseException | None = None,
        hang: bool = False,
    ):
        self.chunks = list(chunks)
        self.error = error
        self.hang = hang
        self.pulls = 0
        self.close_count = 0

    def __aiter__(self) -> ChunkSource:
        return self

    async def __anext__(self) -> bytes | str:
        if self.pulls < len(self.chunks):
            chunk = self.chunks[self.pulls]
            self.pulls += 1
            return chunk
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()
        raise StopAsyncIteration

    async def aclose(self) -> None:
        self.close_count += 1


class Recorder:
    """Collects handler invocations in arrival order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    @property
    def texts(self) -> list[str]:
        return [value for kind, value in self.calls if kind == "text"]

    def handlers(self, **overrides: Any) -> StreamHandlers:
        slots: dict[str, Any] = {
            "on_text": lambda text: self.calls.append(("text", text)),
            "on_artifact": lambda event: self.calls.append(("artifact", event)),
            "on_build": lambda event: self.calls.append(("build", event)),
            "on_security": lambda event: self.calls.append(("security", event)),
            "on_connection": lambda event: self.calls.append(("connection", event)),
            "on_complete": lambda event: self.calls.append(("complete", event)),
        }
        slots.update(overrides)
        return StreamHandlers(**slots)


def encode_line(event_type: str, data: Any) -> str:
    """Encode one wire line the way the chat backend writes it."""
    return f"data: {json.dumps({'type': event_type, 'data': data})}\n"


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_source():
    """Factory for ChunkSource instances."""
    return ChunkSource


@pytest.fixture
def data_line():
    """Encoder for `data: {json}` wire lines."""
    return encode_line
