"""CLI process launch: options, command composition and the session registry."""

from ccwrap.process.command import (
    build_command,
    build_environment,
    resolve_launch_spec,
    resolve_working_directory,
)
from ccwrap.process.options import DEFAULT_LAUNCH_SPEC, LaunchSpec, OptionsFactory
from ccwrap.process.registry import ManagedSession, ProcessRegistry, SessionState

__all__ = [
    "DEFAULT_LAUNCH_SPEC",
    "LaunchSpec",
    "ManagedSession",
    "OptionsFactory",
    "ProcessRegistry",
    "SessionState",
    "build_command",
    "build_environment",
    "resolve_launch_spec",
    "resolve_working_directory",
]
