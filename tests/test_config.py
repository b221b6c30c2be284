"""Tests for ccwrap config models and parser."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from ccwrap.config.models import WrapperConfig
from ccwrap.config.parser import ConfigError, load_config

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict[str, Any]) -> Path:
    """Write *data* as YAML and return the file path."""
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


# ===================================================================
# Model validation tests
# ===================================================================


class TestDefaults:
    def test_empty_config_is_valid(self) -> None:
        cfg = WrapperConfig.model_validate({})
        assert cfg.cli.path == "~/.claude/local/claude"
        assert cfg.cli.defaults.model == "sonnet"
        assert cfg.cli.defaults.max_turns == 20
        assert cfg.cli.defaults.timeout_minutes == 30
        assert cfg.environment.basic.term == "dumb"
        assert cfg.environment.basic.shell == "/bin/bash"
        assert cfg.service.stdout_timeout == 600
        assert cfg.service.exit_timeout == 30
        assert cfg.service.read_chunk_size == 4096
        assert cfg.logging.level == "INFO"

    def test_presets(self) -> None:
        cfg = WrapperConfig.model_validate(
            {"cli": {"presets": {"guest": {"max_turns": 2, "permission_mode": "plan"}}}}
        )
        assert cfg.cli.presets["guest"].max_turns == 2


class TestValidation:
    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WrapperConfig.model_validate({"bogus": 1})

    def test_bad_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WrapperConfig.model_validate({"logging": {"level": "LOUD"}})

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            WrapperConfig.model_validate({"service": {"exit_timeout": 0}})


# ===================================================================
# Parser tests
# ===================================================================


class TestLoadConfig:
    def test_explicit_path(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "ccwrap.yaml", {"cli": {"path": "/opt/claude"}})
        cfg = load_config(path)
        assert cfg.cli.path == "/opt/claude"

    def test_missing_explicit_path(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Config file not found"):
            load_config(tmp_path / "missing.yaml")

    def test_no_file_uses_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == WrapperConfig()

    def test_cwd_file_is_discovered(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_yaml(tmp_path / "ccwrap.yaml", {"logging": {"level": "DEBUG"}})
        monkeypatch.chdir(tmp_path)
        assert load_config().logging.level == "DEBUG"

    def test_empty_file_means_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "ccwrap.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == WrapperConfig()

    def test_invalid_yaml_reports_position(self, tmp_path: Path) -> None:
        path = tmp_path / "ccwrap.yaml"
        path.write_text("cli:\n  path: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match=r"Invalid YAML in ccwrap.yaml \(line"):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "ccwrap.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_config(path)

    def test_unknown_setting_message(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "ccwrap.yaml", {"service": {"retries": 3}})
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        message = str(exc_info.value)
        assert message.startswith("Config validation failed:")
        assert (
            "  service.retries: Unknown setting "
            "(expected one of: exit_timeout, read_chunk_size, stdout_timeout)"
        ) in message

    def test_unknown_top_level_setting(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "ccwrap.yaml", {"servce": {}})
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert (
            "servce: Unknown setting (expected one of: cli, environment, logging, service)"
            in str(exc_info.value)
        )

    def test_unknown_preset_setting(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "ccwrap.yaml", {"cli": {"presets": {"guest": {"turns": 2}}}}
        )
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert (
            "cli.presets.guest.turns: Unknown setting "
            "(expected one of: max_turns, permission_mode, timeout_minutes)"
        ) in str(exc_info.value)

    def test_invalid_choice_message(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "ccwrap.yaml", {"logging": {"level": "LOUD"}})
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert "logging.level: Invalid value 'LOUD': Input should be" in str(exc_info.value)

    def test_every_problem_listed(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "ccwrap.yaml",
            {"service": {"exit_timeout": 0, "read_chunk_size": "big"}},
        )
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        message = str(exc_info.value)
        assert "service.exit_timeout: Input should be greater than 0" in message
        assert "service.read_chunk_size: " in message

    def test_dotenv_loaded(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("CCWRAP_TEST_VAR", raising=False)
        path = _write_yaml(tmp_path / "ccwrap.yaml", {})
        (tmp_path / ".env").write_text("CCWRAP_TEST_VAR=hello\n", encoding="utf-8")
        load_config(path)
        assert os.environ.get("CCWRAP_TEST_VAR") == "hello"
        monkeypatch.delenv("CCWRAP_TEST_VAR", raising=False)
