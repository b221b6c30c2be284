"""Immutable launch options for a single CLI invocation."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ccwrap.config.models import PresetConfig, WrapperConfig


class LaunchSpec(BaseModel):
    """Everything needed to launch the CLI once, apart from the prompt.

    Frozen: derive variants with ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    model: str = Field(default="sonnet", description="Model alias or name")
    output_format: Literal["stream-json"] = Field(default="stream-json")
    input_format: str | None = Field(default=None)
    verbose: bool = Field(default=True)
    continue_session: bool = Field(
        default=False, description="Continue the most recent conversation"
    )
    resume_session_id: str | None = Field(
        default=None, description="External conversation id to resume"
    )
    permission_mode: str | None = Field(default=None)
    permission_prompt_tool: str | None = Field(default=None)
    dangerously_skip_permissions: bool = Field(default=True)
    max_turns: int | None = Field(default=None, ge=1)
    timeout: float | None = Field(
        default=None, gt=0, description="Soft bound (s) on draining stdout"
    )
    working_directory: str | None = Field(
        default=None, description="Directory the CLI runs in"
    )
    working_directories: tuple[str, ...] = Field(
        default=(), description="Extra directories granted via --add-dir"
    )
    additional_env_vars: dict[str, str] = Field(default_factory=dict)
    enable_debug_logging: bool = Field(default=False)
    log_level: str = Field(default="INFO")


#: Options used when the caller supplies none.
DEFAULT_LAUNCH_SPEC = LaunchSpec()


class OptionsFactory:
    """Build ``LaunchSpec`` values from a loaded ``WrapperConfig``."""

    def __init__(self, config: WrapperConfig) -> None:
        self._config = config

    def create_default_options(self) -> LaunchSpec:
        defaults = self._config.cli.defaults
        return LaunchSpec(
            model=defaults.model,
            output_format=defaults.output_format,
            verbose=defaults.verbose,
            max_turns=defaults.max_turns,
            timeout=_minutes_to_seconds(defaults.timeout_minutes),
            additional_env_vars=self._environment_vars(),
        )

    def create_preset_options(self, preset_name: str) -> LaunchSpec | None:
        """Defaults overlaid with the named preset, or None if it is unknown."""
        preset = self._config.cli.presets.get(preset_name)
        if preset is None:
            return None
        return self._apply_preset(preset)

    def create_user_level_options(self, level: str) -> LaunchSpec | None:
        """Preset lookup keyed by a case-insensitive user level."""
        return self.create_preset_options(level.lower())

    def _apply_preset(self, preset: PresetConfig) -> LaunchSpec:
        defaults = self._config.cli.defaults
        timeout_minutes = (
            preset.timeout_minutes
            if preset.timeout_minutes is not None
            else defaults.timeout_minutes
        )
        return LaunchSpec(
            model=defaults.model,
            output_format=defaults.output_format,
            verbose=defaults.verbose,
            max_turns=preset.max_turns if preset.max_turns is not None else defaults.max_turns,
            timeout=_minutes_to_seconds(timeout_minutes),
            permission_mode=preset.permission_mode,
            additional_env_vars=self._environment_vars(),
        )

    def _environment_vars(self) -> dict[str, str]:
        env = self._config.environment
        env_vars = {"TERM": env.basic.term}
        if env.debug.claude_debug:
            env_vars["CLAUDE_DEBUG"] = "1"
        if env.debug.claude_trace:
            env_vars["CLAUDE_TRACE"] = "1"
        env_vars["LOG_LEVEL"] = env.debug.log_level
        return env_vars


def _minutes_to_seconds(minutes: float | None) -> float | None:
    return minutes * 60 if minutes is not None else None
