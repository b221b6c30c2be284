"""Shared helper functions."""

from __future__ import annotations

import logging


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.split("\n") if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Return *text* cut to *limit* characters, marking the cut with *suffix*."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


#: Root log format for command-line runs.
LOG_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)-5s %(name)s - %(message)s"


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Configure root logging to stderr; *verbose* forces DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
