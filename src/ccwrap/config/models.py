"""Pydantic v2 models for ccwrap.yaml configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DefaultsConfig(BaseModel):
    """Launch defaults applied to every CLI invocation."""

    model_config = ConfigDict(extra="forbid")

    model: str = Field(default="sonnet", description="Claude model alias or name")
    output_format: Literal["stream-json"] = Field(
        default="stream-json",
        description="CLI output format (only line-delimited JSON is supported)",
    )
    verbose: bool = Field(default=True, description="Pass --verbose to the CLI")
    max_turns: int | None = Field(
        default=20, ge=1, description="Agentic turn cap (null for unlimited)"
    )
    timeout_minutes: float | None = Field(
        default=30, gt=0, description="Soft bound on draining stdout, in minutes"
    )


class PresetConfig(BaseModel):
    """Named override bundle, e.g. a per-user-level permission profile."""

    model_config = ConfigDict(extra="forbid")

    max_turns: int | None = Field(default=None, ge=1)
    permission_mode: str | None = Field(default=None)
    timeout_minutes: float | None = Field(default=None, gt=0)


class CLIConfig(BaseModel):
    """Where the CLI lives and how it is launched."""

    model_config = ConfigDict(extra="forbid")

    path: str = Field(
        default="~/.claude/local/claude",
        description="Path to the claude executable (~ is expanded)",
    )
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    presets: dict[str, PresetConfig] = Field(default_factory=dict)


class BasicEnvConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    term: str = Field(default="dumb")
    shell: str = Field(default="/bin/bash")


class DebugEnvConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    claude_debug: bool = Field(default=False)
    claude_trace: bool = Field(default=False)
    log_level: LogLevel = Field(default="INFO")


class EnvironmentConfig(BaseModel):
    """Environment variables injected into every CLI subprocess."""

    model_config = ConfigDict(extra="forbid")

    basic: BasicEnvConfig = Field(default_factory=BasicEnvConfig)
    debug: DebugEnvConfig = Field(default_factory=DebugEnvConfig)


class ServiceConfig(BaseModel):
    """Bounded waits and read sizes used by the session orchestrator."""

    model_config = ConfigDict(extra="forbid")

    stdout_timeout: float = Field(
        default=600.0, gt=0, description="Soft bound (s) on draining stdout"
    )
    exit_timeout: float = Field(
        default=30.0, gt=0, description="Hard bound (s) on process exit"
    )
    read_chunk_size: int = Field(
        default=4096, ge=1, description="Bytes requested per stdout read"
    )


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: LogLevel = Field(default="INFO")


class WrapperConfig(BaseModel):
    """Top-level ccwrap.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    cli: CLIConfig = Field(default_factory=CLIConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
