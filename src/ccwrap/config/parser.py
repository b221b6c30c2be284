"""Load and validate ccwrap.yaml configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, get_args, get_origin

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from ccwrap.config.models import WrapperConfig

DEFAULT_CONFIG_NAME = "ccwrap.yaml"


class ConfigError(Exception):
    """User-facing configuration error."""


def load_config(path: Path | None = None) -> WrapperConfig:
    """Load and validate a ccwrap.yaml file.

    Args:
        path: Explicit config file path. If None, looks for
              ccwrap.yaml in the current directory and falls back
              to built-in defaults when there is none.

    Returns:
        A validated WrapperConfig instance.

    Raises:
        ConfigError: On missing explicit file, bad YAML, or validation failure.
    """
    config_path = _resolve_path(path)
    if config_path is None:
        return WrapperConfig()
    raw = _read_yaml(config_path)
    _load_env(config_path.parent)
    return _validate(raw)


def _resolve_path(path: Path | None) -> Path | None:
    if path is not None:
        resolved = Path(path)
        if not resolved.is_file():
            msg = f"Config file not found: {resolved}"
            raise ConfigError(msg)
        return resolved

    default = Path.cwd() / DEFAULT_CONFIG_NAME
    if not default.is_file():
        return None
    return default


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read config file: {exc}"
        raise ConfigError(msg) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        detail = ""
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            detail = f" (line {mark.line + 1}, column {mark.column + 1})"
        msg = f"Invalid YAML in {path.name}{detail}"
        raise ConfigError(msg) from exc

    # An empty file means "all defaults".
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {path.name}, got {type(data).__name__}"
        raise ConfigError(msg)

    return data


def _load_env(config_dir: Path) -> None:
    env_path = config_dir / ".env"
    if env_path.is_file():
        load_dotenv(env_path)


def _validate(raw: dict[str, Any]) -> WrapperConfig:
    try:
        return WrapperConfig.model_validate(raw)
    except ValidationError as exc:
        joined = "\n".join(f"  {_describe_error(err)}" for err in exc.errors())
        msg = f"Config validation failed:\n{joined}"
        raise ConfigError(msg) from exc


def _describe_error(err: Any) -> str:
    """One line per problem, keyed by the dotted path into ccwrap.yaml."""
    loc = err["loc"]
    path = ".".join(str(part) for part in loc) or "(top level)"
    if err["type"] == "extra_forbidden":
        allowed = _allowed_keys(loc[:-1])
        hint = f" (expected one of: {', '.join(allowed)})" if allowed else ""
        return f"{path}: Unknown setting{hint}"
    if err["type"] == "literal_error":
        return f"{path}: Invalid value {err['input']!r}: {err['msg']}"
    return f"{path}: {err['msg']}"


def _allowed_keys(loc: tuple[int | str, ...]) -> list[str]:
    """Setting names accepted at *loc*, walking the model tree."""
    annotation: Any = WrapperConfig
    for part in loc:
        if get_origin(annotation) is dict:
            # Named entries such as presets: any key, fixed value schema.
            annotation = get_args(annotation)[1]
            continue
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            return []
        field = annotation.model_fields.get(str(part))
        if field is None:
            return []
        annotation = field.annotation
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return sorted(annotation.model_fields)
    return []
