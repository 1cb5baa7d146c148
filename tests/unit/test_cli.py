"""Unit tests for the chat-stream CLI."""

from __future__ import annotations

import json

import httpx
from click.testing import CliRunner

from chat_stream.cli import main
from chat_stream.client import ChatClient

CAPTURE = (
    "id: s_1\n"
    'data: {"type":"chunk","data":{"type":"connection","message":"Stream connected"}}\n'
    "\n"
    'data: {"type":"metadata","data":{"conversationId":"c1","messageId":"m1"}}\n'
    "\n"
    'data: {"type":"chunk","data":{"text":"Hello "}}\n'
    "\n"
    'data: {"type":"chunk","data":{"text":"there"}}\n'
    "\n"
    "data: [DONE]\n"
)


class TestDecodeCommand:
    def test_decode_text(self, tmp_path):
        capture = tmp_path / "capture.txt"
        capture.write_text(CAPTURE)

        result = CliRunner().invoke(main, ["decode", str(capture), "--chunk-size", "5"])

        assert result.exit_code == 0, result.output
        assert "Hello there" in result.output

    def test_decode_json(self, tmp_path):
        capture = tmp_path / "capture.txt"
        capture.write_text(CAPTURE)

        result = CliRunner().invoke(main, ["decode", str(capture), "--format", "json"])

        assert result.exit_code == 0, result.output
        records = [json.loads(line) for line in result.output.splitlines() if line]
        assert [r["text"] for r in records if r["kind"] == "text"] == ["Hello ", "there"]
        assert records[-1] == {
            "kind": "result",
            "result": {"conversation_id": "c1", "message_id": "m1"},
        }

    def test_decode_error_event_exits_nonzero(self, tmp_path):
        capture = tmp_path / "capture.txt"
        capture.write_text('data: {"type":"error","data":{"error":"quota exceeded"}}\n')

        result = CliRunner().invoke(main, ["decode", str(capture)])

        assert result.exit_code == 1
        assert "quota exceeded" in result.output

    def test_decode_rejects_zero_chunk_size(self, tmp_path):
        capture = tmp_path / "capture.txt"
        capture.write_text(CAPTURE)

        result = CliRunner().invoke(main, ["decode", str(capture), "--chunk-size", "0"])

        assert result.exit_code == 2


class TestSendCommand:
    def test_send_stream_error_exits_nonzero(self, monkeypatch):
        """httpx stream misuse errors are not HTTPError subclasses but still exit cleanly."""

        async def stream_message(self, message, handlers, conversation_id=None):
            raise httpx.StreamClosed()

        monkeypatch.setattr(ChatClient, "stream_message", stream_message)

        result = CliRunner().invoke(main, ["send", "hi", "--url", "http://chat.test"])

        assert result.exit_code == 1
        assert "Transport error" in result.output

    def test_send_http_error_exits_nonzero(self, monkeypatch):
        async def stream_message(self, message, handlers, conversation_id=None):
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr(ChatClient, "stream_message", stream_message)

        result = CliRunner().invoke(main, ["send", "hi", "--url", "http://chat.test"])

        assert result.exit_code == 1
        assert "connection refused" in result.output
