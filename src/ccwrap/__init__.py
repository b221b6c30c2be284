"""ccwrap — session manager and stream decoder for the Claude Code CLI."""

__version__ = "0.1.0"
