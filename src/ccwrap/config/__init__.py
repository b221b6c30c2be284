"""Configuration models and parser for ccwrap.yaml."""

from ccwrap.config.models import (
    CLIConfig,
    DefaultsConfig,
    EnvironmentConfig,
    PresetConfig,
    ServiceConfig,
    WrapperConfig,
)
from ccwrap.config.parser import ConfigError, load_config

__all__ = [
    "CLIConfig",
    "ConfigError",
    "DefaultsConfig",
    "EnvironmentConfig",
    "PresetConfig",
    "ServiceConfig",
    "WrapperConfig",
    "load_config",
]
