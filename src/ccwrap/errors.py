"""Error taxonomy for the session manager and stream decoder."""

from __future__ import annotations

from typing import Literal

SpawnFailure = Literal[
    "not_found",
    "permission_denied",
    "bad_working_directory",
    "busy",
    "os_error",
]


class WrapperError(Exception):
    """Base class for all ccwrap errors."""


class SpawnError(WrapperError):
    """The CLI process could not be started.

    ``reason`` classifies the failure so callers can present it without
    parsing the message text.
    """

    def __init__(self, message: str, *, reason: SpawnFailure = "os_error") -> None:
        super().__init__(message)
        self.reason: SpawnFailure = reason


class StreamReadError(WrapperError):
    """Reading a process output pipe failed mid-session."""


class MalformedLineError(WrapperError):
    """A stdout line could not be parsed as a JSON object."""

    def __init__(self, line: str, detail: str = "") -> None:
        message = "Malformed stream line"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.line = line


class ProcessTimeout(WrapperError):
    """A bounded wait on a session expired.

    ``stage`` is ``"stdout"`` for the soft drain bound and ``"exit"`` for
    the hard bound on process exit.
    """

    def __init__(self, stage: Literal["stdout", "exit"], timeout: float) -> None:
        super().__init__(f"Timed out after {timeout:g}s waiting for {stage}")
        self.stage = stage
        self.timeout = timeout


def describe_failure(exc: BaseException) -> str:
    """Translate *exc* into a short user-facing message.

    Raw internal error text is only surfaced in the generic category.
    """
    text = str(exc)
    if isinstance(exc, SpawnError):
        if exc.reason == "not_found":
            return "Claude CLI not found. Please ensure Claude Code is installed."
        if exc.reason == "permission_denied":
            return "Permission denied. Please check file permissions."
    if isinstance(exc, FileNotFoundError) or "No such file" in text:
        return "Claude CLI not found. Please ensure Claude Code is installed."
    if isinstance(exc, PermissionError) or "Permission denied" in text:
        return "Permission denied. Please check file permissions."
    if "Invalid session" in text:
        return "Session expired. Please start a new conversation."
    return f"Claude CLI error: {text or 'Unknown error'}"
