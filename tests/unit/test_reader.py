"""Unit tests for FrameReader line reassembly."""

from __future__ import annotations

import pytest

from chat_stream.reader import FrameReader


async def read_all(reader: FrameReader) -> list[str]:
    lines: list[str] = []
    while (batch := await reader.pull()) is not None:
        lines.extend(batch)
    return lines


class TestFrameReader:
    """Tests for chunk-boundary independent line splitting."""

    @pytest.mark.asyncio
    async def test_single_chunk_multiple_lines(self, make_source) -> None:
        """All complete lines in one chunk come out of a single pull."""
        reader = FrameReader(make_source([b"a\nb\nc\n"]))

        assert await reader.pull() == ["a", "b", "c"]
        assert reader.pending == ""
        assert await reader.pull() is None

    @pytest.mark.asyncio
    async def test_line_split_across_chunks(self, make_source) -> None:
        """A partial line is carried until its terminator arrives."""
        reader = FrameReader(make_source([b"data: hel", b"lo\nda", b"ta: x\n"]))

        assert await reader.pull() == []
        assert reader.pending == "data: hel"
        assert await reader.pull() == ["data: hello"]
        assert reader.pending == "da"
        assert await reader.pull() == ["data: x"]

    @pytest.mark.asyncio
    async def test_every_split_point_gives_same_line(self, make_source) -> None:
        """Splitting a line at any position reconstructs it identically."""
        line = 'data: {"type":"chunk","data":{"text":"Hello"}}'
        raw = (line + "\n").encode()

        for cut in range(1, len(raw)):
            reader = FrameReader(make_source([raw[:cut], raw[cut:]]))
            assert await read_all(reader) == [line], f"split at {cut}"

    @pytest.mark.asyncio
    async def test_byte_per_chunk(self, make_source) -> None:
        """One byte per chunk is still one line."""
        raw = b"data: [DONE]\n"
        reader = FrameReader(make_source([raw[i : i + 1] for i in range(len(raw))]))

        assert await read_all(reader) == ["data: [DONE]"]

    @pytest.mark.asyncio
    async def test_multibyte_character_split(self, make_source) -> None:
        """A UTF-8 sequence split across chunks decodes correctly."""
        raw = "data: héllo 🌍\n".encode()
        cut = raw.index("🌍".encode()) + 2
        reader = FrameReader(make_source([raw[:cut], raw[cut:]]))

        assert await read_all(reader) == ["data: héllo 🌍"]

    @pytest.mark.asyncio
    async def test_unterminated_tail_is_discarded(self, make_source) -> None:
        """Text after the last newline is never emitted at end of stream."""
        reader = FrameReader(make_source([b"data: one\ndata: tw"]))

        assert await reader.pull() == ["data: one"]
        assert await reader.pull() is None
        assert reader.pending == ""
        assert reader.exhausted is True

    @pytest.mark.asyncio
    async def test_blank_lines_are_preserved(self, make_source) -> None:
        """Event separators come through as empty lines."""
        reader = FrameReader(make_source([b"data: a\n\ndata: b\n\n"]))

        assert await read_all(reader) == ["data: a", "", "data: b", ""]

    @pytest.mark.asyncio
    async def test_str_chunks_accepted(self, make_source) -> None:
        """Already-decoded text chunks pass through unchanged."""
        reader = FrameReader(make_source(["x\ny", "z\n"]))

        assert await read_all(reader) == ["x", "yz"]

    @pytest.mark.asyncio
    async def test_pull_after_exhaustion(self, make_source) -> None:
        """Pulling past the end keeps returning None without reading."""
        source = make_source([b"a\n"])
        reader = FrameReader(source)

        await read_all(reader)
        pulls = source.pulls
        assert await reader.pull() is None
        assert source.pulls == pulls

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, make_source) -> None:
        """Read failures reach the caller unmodified."""
        error = ConnectionResetError("peer reset")
        reader = FrameReader(make_source([b"a\n"], error=error))

        assert await reader.pull() == ["a"]
        with pytest.raises(ConnectionResetError) as exc_info:
            await reader.pull()
        assert exc_info.value is error
