"""ccwrap decode — decode a captured stream-json transcript offline."""

from __future__ import annotations

from typing import BinaryIO

import click

from ccwrap.commands.output import echo_message
from ccwrap.helpers import configure_logging
from ccwrap.messages.decoder import MessageDecoder
from ccwrap.session_id import resolve_session_id
from ccwrap.stream.reassembler import DEFAULT_CHUNK_SIZE, LineReassembler


@click.command()
@click.argument("source", type=click.File("rb"), default="-")
@click.option("--json", "as_json", is_flag=True, help="Print messages as JSON lines.")
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=DEFAULT_CHUNK_SIZE,
    show_default=True,
    help="Bytes read per chunk.",
)
@click.option(
    "--drop-trailing",
    is_flag=True,
    help="Discard an unterminated final line instead of decoding it.",
)
@click.option("--handle", default="decode", show_default=True, help="Session handle to use.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def decode(
    source: BinaryIO,
    as_json: bool,
    chunk_size: int,
    drop_trailing: bool,
    handle: str,
    verbose: bool,
) -> None:
    """Decode SOURCE (a file, or - for stdin) as Claude CLI stream-json."""
    configure_logging("ERROR", verbose)

    decoder = MessageDecoder()
    reassembler = LineReassembler(trailing="drop" if drop_trailing else "emit")
    conversation_id: str | None = None

    def _handle_lines(lines: list[str]) -> None:
        nonlocal conversation_id
        for line in lines:
            message = decoder.decode(line, handle)
            echo_message(message, as_json)
            conversation_id = resolve_session_id(message) or conversation_id

    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        _handle_lines(reassembler.feed(chunk))
    _handle_lines(reassembler.finish())

    if conversation_id and not as_json:
        click.echo(f"Conversation: {conversation_id}")
