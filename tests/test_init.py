"""Tests for `ccwrap init` command."""

from __future__ import annotations

from pathlib import Path

import yaml
from click.testing import CliRunner

from ccwrap.cli import cli
from ccwrap.commands.init import TEMPLATE_YAML
from ccwrap.config.models import WrapperConfig
from ccwrap.config.parser import DEFAULT_CONFIG_NAME, load_config


class TestInitCreatesFiles:
    """ccwrap init creates the expected file."""

    def test_creates_ccwrap_yaml(self, tmp_path: Path) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["init"])
            assert result.exit_code == 0
            assert Path(DEFAULT_CONFIG_NAME).is_file()

    def test_output_mentions_next_steps(self, tmp_path: Path) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["init"])
            assert f"Created {DEFAULT_CONFIG_NAME}" in result.output
            assert "Next steps" in result.output


class TestTemplateIsValid:
    def test_template_parses(self) -> None:
        config = WrapperConfig.model_validate(yaml.safe_load(TEMPLATE_YAML))
        assert config.cli.defaults.model == "sonnet"
        assert "readonly" in config.cli.presets

    def test_written_file_loads(self, tmp_path: Path) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            runner.invoke(cli, ["init"])
            config = load_config(Path(DEFAULT_CONFIG_NAME))
            assert config.service.exit_timeout == 30


class TestInitRefusesOverwrite:
    def test_existing_file_kept(self, tmp_path: Path) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(DEFAULT_CONFIG_NAME).write_text("logging:\n  level: DEBUG\n")
            result = runner.invoke(cli, ["init"])
            assert result.exit_code == 1
            assert "already exists" in result.output
            assert Path(DEFAULT_CONFIG_NAME).read_text() == "logging:\n  level: DEBUG\n"

    def test_force_overwrites(self, tmp_path: Path) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(DEFAULT_CONFIG_NAME).write_text("old")
            result = runner.invoke(cli, ["init", "--force"])
            assert result.exit_code == 0
            assert Path(DEFAULT_CONFIG_NAME).read_text() == TEMPLATE_YAML
