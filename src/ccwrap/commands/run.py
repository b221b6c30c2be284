"""ccwrap run — run one Claude CLI session and print its messages."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import click

from ccwrap.commands.output import echo_message
from ccwrap.config.models import WrapperConfig
from ccwrap.config.parser import ConfigError, load_config
from ccwrap.helpers import configure_logging
from ccwrap.messages.models import CompleteMessage, ErrorMessage, WrapperMessage
from ccwrap.process.options import LaunchSpec, OptionsFactory
from ccwrap.service import WrapperService


@click.command()
@click.argument("prompt")
@click.option("-f", "--file", "config_file", type=click.Path(), help="Config file path.")
@click.option("--resume", "resume_id", default=None, help="Conversation id to resume.")
@click.option(
    "--continue",
    "continue_session",
    is_flag=True,
    help="Continue the most recent conversation.",
)
@click.option("--preset", default=None, help="Named option preset from the config.")
@click.option(
    "--cwd",
    "project_path",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to run the CLI in.",
)
@click.option("--json", "as_json", is_flag=True, help="Print messages as JSON lines.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def run(
    prompt: str,
    config_file: str | None,
    resume_id: str | None,
    continue_session: bool,
    preset: str | None,
    project_path: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Send PROMPT to the Claude CLI and stream the decoded messages."""
    try:
        config = load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    configure_logging(config.logging.level, verbose)

    factory = OptionsFactory(config)
    if preset:
        options = factory.create_preset_options(preset)
        if options is None:
            available = ", ".join(sorted(config.cli.presets)) or "none"
            click.echo(f"Error: unknown preset '{preset}' (available: {available})", err=True)
            raise SystemExit(1)
    else:
        options = factory.create_default_options()
    if continue_session:
        options = options.model_copy(update={"continue_session": True})

    exit_code = asyncio.run(
        _run_session(config, prompt, options, resume_id, project_path, as_json)
    )
    raise SystemExit(exit_code)


async def _run_session(
    config: WrapperConfig,
    prompt: str,
    options: LaunchSpec,
    resume_id: str | None,
    project_path: str | None,
    as_json: bool,
) -> int:
    """Run one session to completion; return the process exit status."""
    service = WrapperService.from_config(config)
    handle = str(uuid.uuid4())
    outcome = {"exit_code": 0, "failed": False}

    async def _on_message(message: WrapperMessage) -> None:
        echo_message(message, as_json)
        if isinstance(message, ErrorMessage):
            outcome["failed"] = True
        elif isinstance(message, CompleteMessage):
            outcome["exit_code"] = message.exit_code

    task = service.start_session(
        handle,
        prompt,
        on_message=_on_message,
        conversation_id=resume_id,
        is_first_message=resume_id is None,
        project_path=project_path,
        options=options,
    )
    try:
        await task
    finally:
        await service.shutdown()

    conversation = service.conversation_id(handle)
    if conversation and not as_json:
        click.echo(f"Conversation: {conversation}")

    if outcome["failed"]:
        return 1
    code = int(outcome["exit_code"])
    return code if code >= 0 else 1
