"""ccwrap init — write a starter ccwrap.yaml."""

from __future__ import annotations

from pathlib import Path

import click

from ccwrap.config.parser import DEFAULT_CONFIG_NAME

TEMPLATE_YAML = """\
# ccwrap configuration

cli:
  # Path to the claude executable (~ is expanded)
  path: ~/.claude/local/claude
  defaults:
    model: sonnet
    verbose: true
    max_turns: 20
    timeout_minutes: 30
  # Named option bundles, selected with `ccwrap run --preset NAME`
  presets:
    readonly:
      permission_mode: plan
      max_turns: 5

environment:
  basic:
    term: dumb
    shell: /bin/bash
  debug:
    claude_debug: false
    claude_trace: false
    log_level: INFO

# Bounded waits for each CLI run (seconds)
# service:
#   stdout_timeout: 600
#   exit_timeout: 30
#   read_chunk_size: 4096

logging:
  level: INFO
"""


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help=f"Overwrite existing {DEFAULT_CONFIG_NAME} if it exists.",
)
def init(force: bool) -> None:
    """Write a starter ccwrap.yaml in the current directory."""
    config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if config_path.exists() and not force:
        raise click.ClickException(
            f"{DEFAULT_CONFIG_NAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(f"Cannot write {DEFAULT_CONFIG_NAME}: {exc}") from exc
    click.echo(f"  Created {DEFAULT_CONFIG_NAME}")
    click.echo()
    click.echo("Next steps:")
    click.echo(f"  1. Point cli.path in {DEFAULT_CONFIG_NAME} at your claude executable")
    click.echo('  2. Run `ccwrap run "your prompt"`')
