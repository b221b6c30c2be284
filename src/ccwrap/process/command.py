"""Command composer — turns a prompt and a ``LaunchSpec`` into argv + env."""

from __future__ import annotations

import getpass
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from ccwrap.process.options import DEFAULT_LAUNCH_SPEC, LaunchSpec

logger = logging.getLogger(__name__)

#: Default location of a locally installed Claude CLI.
DEFAULT_CLI_PATH = "~/.claude/local/claude"

#: Values backfilled when the ambient environment lacks them.
_FALLBACK_TERM = "dumb"
_FALLBACK_SHELL = "/bin/bash"


def build_command(
    prompt: str,
    spec: LaunchSpec,
    cli_path: str = DEFAULT_CLI_PATH,
) -> list[str]:
    """Return the argument vector for one print-and-exit CLI run."""
    args = [os.path.expanduser(cli_path), "--print", prompt]

    if spec.resume_session_id is not None:
        args.extend(["--resume", spec.resume_session_id])
    elif spec.continue_session:
        args.append("--continue")
    args.extend(["--model", spec.model])

    args.extend(["--output-format", spec.output_format])

    optional_flags = (
        ("--input-format", spec.input_format),
        ("--permission-mode", spec.permission_mode),
        ("--permission-prompt-tool", spec.permission_prompt_tool),
    )
    for flag, value in optional_flags:
        if value is not None and value.strip():
            args.extend([flag, value])

    if spec.dangerously_skip_permissions:
        args.append("--dangerously-skip-permissions")

    if spec.max_turns is not None:
        args.extend(["--max-turns", str(spec.max_turns)])

    for directory in spec.working_directories:
        args.extend(["--add-dir", directory])

    if spec.verbose:
        args.append("--verbose")

    return args


def build_environment(
    spec: LaunchSpec,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the subprocess environment for *spec*.

    Starts from *base_env* (the ambient environment by default), backfills
    the variables the CLI expects, then applies debug and caller overrides.
    """
    env = dict(os.environ if base_env is None else base_env)

    env.setdefault("HOME", str(Path.home()))
    if "USER" not in env:
        env["USER"] = _current_user()
    env.setdefault("TERM", _FALLBACK_TERM)
    env.setdefault("SHELL", _FALLBACK_SHELL)

    if spec.enable_debug_logging:
        env["CLAUDE_DEBUG"] = "1"
        env["LOG_LEVEL"] = spec.log_level

    env.update(spec.additional_env_vars)
    return env


def resolve_launch_spec(
    options: LaunchSpec | None,
    conversation_id: str | None,
    is_first_message: bool,
) -> LaunchSpec:
    """Set or clear the resume target on *options*.

    Only a follow-up message with a non-blank conversation id resumes.
    """
    base = options if options is not None else DEFAULT_LAUNCH_SPEC
    resume_id = None
    if not is_first_message and conversation_id and conversation_id.strip():
        resume_id = conversation_id.strip()

    if resume_id is not None:
        logger.info("Resuming Claude conversation %s", resume_id)
    elif base.continue_session:
        logger.info("Continuing most recent Claude conversation")
    elif not is_first_message:
        logger.warning("Follow-up without a conversation id; starting a new one")
    return base.model_copy(update={"resume_session_id": resume_id})


def resolve_working_directory(project_path: str | None) -> Path:
    """Return *project_path* if usable, else the current working directory."""
    if project_path and project_path.strip():
        candidate = Path(project_path).expanduser()
        if candidate.is_dir() and os.access(candidate, os.R_OK | os.X_OK):
            logger.info("Using project directory: %s", candidate.resolve())
            return candidate.resolve()
        logger.warning(
            "Invalid project path %r, falling back to current directory", project_path
        )
    return Path.cwd()


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "user"
