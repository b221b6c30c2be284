"""Root CLI group and version flag."""

import click

from ccwrap import __version__
from ccwrap.commands.decode import decode
from ccwrap.commands.init import init
from ccwrap.commands.run import run


@click.group()
@click.version_option(version=__version__, prog_name="ccwrap")
def cli() -> None:
    """ccwrap — run the Claude Code CLI and decode its event stream."""


cli.add_command(init)
cli.add_command(run)
cli.add_command(decode)
