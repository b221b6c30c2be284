"""Terminal rendering of wrapper messages."""

from __future__ import annotations

import click

from ccwrap.messages.models import ErrorMessage, WrapperMessage

_KIND_COLORS = {
    "assistant": "cyan",
    "user": "blue",
    "result": "green",
    "system": "magenta",
    "claude-error": "red",
    "claude-complete": "green",
}


def echo_message(message: WrapperMessage, as_json: bool = False) -> None:
    """Print *message* as one JSON line or as ``[kind] text``."""
    if as_json:
        click.echo(message.model_dump_json(exclude_none=True))
        return

    text = message.error if isinstance(message, ErrorMessage) else message.content
    label = click.style(f"[{message.kind}]", fg=_KIND_COLORS.get(message.kind))
    click.echo(f"{label} {text or ''}".rstrip(), err=isinstance(message, ErrorMessage))
