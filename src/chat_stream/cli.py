"""chat-stream CLI.

Usage:
    chat-stream send "Build me a todo app"          # Stream a reply to stdout
    chat-stream send "and add tests" -c <conv-id>   # Continue a conversation
    chat-stream regenerate <message-id>             # Regenerate a reply
    chat-stream decode capture.txt                  # Replay a captured stream

Connection settings come from CHAT_STREAM_API_URL / CHAT_STREAM_TOKEN /
CHAT_STREAM_TIMEOUT unless given as options.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

import click
import httpx

from .client import ChatClient
from .config import ClientConfig
from .dispatcher import StreamHandlers
from .errors import StreamDecodeError
from .protocol.events import ArtifactProduced, BuildStatus, DecodeResult, SecurityReport
from .session import StreamSession

FORMAT_TEXT = "text"
FORMAT_JSON = "json"


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    # Reply text goes to stdout; keep logs on stderr
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def _echo_handlers(output_format: str) -> StreamHandlers:
    """Handlers that print the reply to stdout and side events to stderr."""

    def on_text(text: str) -> None:
        if output_format == FORMAT_JSON:
            click.echo(json.dumps({"kind": "text", "text": text}, ensure_ascii=False))
        else:
            click.echo(text, nl=False)

    def on_side_event(event: ArtifactProduced | BuildStatus | SecurityReport) -> None:
        if output_format == FORMAT_JSON:
            click.echo(event.model_dump_json())
        elif isinstance(event, ArtifactProduced):
            click.echo(f"\n[artifact] {event.title} ({event.language}) {event.storage_url}", err=True)
        elif isinstance(event, BuildStatus):
            detail = f": {event.message}" if event.message else ""
            click.echo(f"\n[build] {event.status}{detail}", err=True)
        else:
            click.echo(f"\n[security] risk={event.risk_level} score={event.score}", err=True)

    return StreamHandlers(
        on_text=on_text,
        on_artifact=on_side_event,
        on_build=on_side_event,
        on_security=on_side_event,
    )


def _report(result: DecodeResult | None, output_format: str) -> None:
    if output_format == FORMAT_JSON:
        payload = result.model_dump() if result else None
        click.echo(json.dumps({"kind": "result", "result": payload}))
        return
    click.echo()
    if result:
        click.echo(
            f"conversation={result.conversation_id} message={result.message_id}",
            err=True,
        )


def _run(coro_factory: Callable[[], Awaitable[DecodeResult | None]], output_format: str) -> None:
    try:
        result = asyncio.run(coro_factory())
    except StreamDecodeError as e:
        click.echo(f"\nError: {e}", err=True)
        sys.exit(1)
    except (httpx.HTTPError, httpx.StreamError) as e:
        click.echo(f"\nTransport error: {e}", err=True)
        sys.exit(1)
    _report(result, output_format)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """Stream assistant replies from the chat API."""
    _configure_logging(verbose)


def _connection_options(fn):
    fn = click.option("--url", "base_url", default=None, help="API base URL")(fn)
    fn = click.option("--token", default=None, help="Bearer token")(fn)
    fn = click.option("--timeout", type=float, default=None, help="Connect timeout in seconds")(fn)
    fn = click.option(
        "--format",
        "output_format",
        type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
        default=FORMAT_TEXT,
        help="Output format",
    )(fn)
    return fn


@main.command()
@click.argument("message")
@click.option("-c", "--conversation-id", default=None, help="Continue an existing conversation")
@_connection_options
def send(
    message: str,
    conversation_id: str | None,
    base_url: str | None,
    token: str | None,
    timeout: float | None,
    output_format: str,
) -> None:
    """Send MESSAGE and stream the reply."""
    config = ClientConfig.from_env(base_url=base_url, token=token, timeout=timeout)
    handlers = _echo_handlers(output_format)

    async def go() -> DecodeResult | None:
        async with ChatClient(config) as client:
            return await client.stream_message(message, handlers, conversation_id=conversation_id)

    _run(go, output_format)


@main.command()
@click.argument("message_id")
@_connection_options
def regenerate(
    message_id: str,
    base_url: str | None,
    token: str | None,
    timeout: float | None,
    output_format: str,
) -> None:
    """Regenerate the assistant reply MESSAGE_ID."""
    config = ClientConfig.from_env(base_url=base_url, token=token, timeout=timeout)
    handlers = _echo_handlers(output_format)

    async def go() -> DecodeResult | None:
        async with ChatClient(config) as client:
            return await client.regenerate_message(message_id, handlers)

    _run(go, output_format)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--chunk-size", default=64, show_default=True, help="Bytes per simulated chunk")
@click.option(
    "--format",
    "output_format",
    type=click.Choice([FORMAT_TEXT, FORMAT_JSON]),
    default=FORMAT_TEXT,
    help="Output format",
)
def decode(path: Path, chunk_size: int, output_format: str) -> None:
    """Replay a captured stream from PATH through the decoder.

    The file is fed in CHUNK_SIZE pieces to mimic network delivery.
    """
    if chunk_size < 1:
        raise click.UsageError("--chunk-size must be at least 1")

    async def chunks() -> AsyncIterator[bytes]:
        with path.open("rb") as f:
            while chunk := f.read(chunk_size):
                yield chunk

    async def go() -> DecodeResult | None:
        session = StreamSession(chunks(), _echo_handlers(output_format))
        result = await session.run()
        logging.getLogger(__name__).info(f"Decoded {path}: {session.stats}")
        return result

    _run(go, output_format)


if __name__ == "__main__":
    main()
