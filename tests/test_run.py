"""Tests for `ccwrap run`."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import yaml
from click.testing import CliRunner

from ccwrap.cli import cli

SESSION = "a1b2c3d4-e5f6-7890-abcd-ef1234567890"

TRANSCRIPT = [
    {"type": "system", "subtype": "init", "session_id": SESSION, "model": "sonnet"},
    {"type": "assistant", "message": {"content": [{"type": "text", "text": "Hello!"}]}},
    {"type": "result", "subtype": "success", "total_cost_usd": 0.01, "num_turns": 1},
]


class _BytesStdout:
    def __init__(self, data: bytes) -> None:
        self._chunks = [data] if data else []

    async def read(self, n: int = -1) -> bytes:
        return self._chunks.pop(0) if self._chunks else b""


def _make_process(events: list[dict[str, Any]], returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.pid = 4242
    proc.returncode = None
    proc.stdout = _BytesStdout(b"".join(json.dumps(e).encode() + b"\n" for e in events))
    proc.stderr = _BytesStdout(b"")
    proc.wait = AsyncMock(return_value=returncode)
    return proc


def _invoke(args: list[str], proc: MagicMock | None = None, **patch_kwargs: Any) -> Any:
    if proc is not None:
        patch_kwargs.setdefault("return_value", proc)
    runner = CliRunner()
    with runner.isolated_filesystem(), patch(
        "asyncio.create_subprocess_exec", new_callable=AsyncMock, **patch_kwargs
    ) as mock_exec:
        result = runner.invoke(cli, ["run", *args])
    return result, mock_exec


class TestRunOutput:
    def test_text_output(self) -> None:
        result, _ = _invoke(["hi"], _make_process(TRANSCRIPT))
        assert result.exit_code == 0
        assert "[assistant] Hello!" in result.output
        assert "[claude-complete] Process completed with exit code: 0" in result.output
        assert f"Conversation: {SESSION}" in result.output

    def test_json_output(self) -> None:
        result, _ = _invoke(["hi", "--json"], _make_process(TRANSCRIPT))
        assert result.exit_code == 0
        records = [
            json.loads(line)
            for line in result.output.splitlines()
            if line.startswith('{"')
        ]
        kinds = [r["kind"] for r in records]
        assert kinds == ["session-created", "system", "assistant", "result", "claude-complete"]
        assert records[1]["session_id"] == SESSION
        assert "Conversation:" not in result.output

    def test_cli_exit_code_propagated(self) -> None:
        result, _ = _invoke(["hi"], _make_process([], returncode=3))
        assert result.exit_code == 3

    def test_missing_binary(self) -> None:
        result, _ = _invoke(["hi"], side_effect=FileNotFoundError(2, "No such file"))
        assert result.exit_code == 1
        assert "Claude CLI not found" in result.output


class TestRunOptions:
    def test_prompt_and_defaults(self) -> None:
        result, mock_exec = _invoke(["do the thing"], _make_process([]))
        assert result.exit_code == 0
        args = mock_exec.call_args.args
        assert args[1:3] == ("--print", "do the thing")
        assert args[args.index("--max-turns") + 1] == "20"

    def test_resume(self) -> None:
        _result, mock_exec = _invoke(["hi", "--resume", SESSION], _make_process([]))
        args = mock_exec.call_args.args
        assert args[args.index("--resume") + 1] == SESSION

    def test_continue(self) -> None:
        _result, mock_exec = _invoke(["hi", "--continue"], _make_process([]))
        assert "--continue" in mock_exec.call_args.args

    def test_cwd(self, tmp_path: Path) -> None:
        _result, mock_exec = _invoke(["hi", "--cwd", str(tmp_path)], _make_process([]))
        assert mock_exec.call_args.kwargs["cwd"] == str(tmp_path.resolve())

    def test_config_and_preset(self, tmp_path: Path) -> None:
        config = tmp_path / "custom.yaml"
        config.write_text(
            yaml.dump(
                {
                    "cli": {
                        "path": "/opt/claude",
                        "presets": {"guest": {"max_turns": 2, "permission_mode": "plan"}},
                    }
                }
            )
        )
        result, mock_exec = _invoke(
            ["hi", "-f", str(config), "--preset", "guest"], _make_process([])
        )
        assert result.exit_code == 0
        args = mock_exec.call_args.args
        assert args[0] == "/opt/claude"
        assert args[args.index("--max-turns") + 1] == "2"
        assert args[args.index("--permission-mode") + 1] == "plan"

    def test_unknown_preset(self) -> None:
        result, mock_exec = _invoke(["hi", "--preset", "nope"], _make_process([]))
        assert result.exit_code == 1
        assert "unknown preset 'nope'" in result.output
        mock_exec.assert_not_called()

    def test_missing_config_file(self) -> None:
        result, mock_exec = _invoke(["hi", "-f", "missing.yaml"], _make_process([]))
        assert result.exit_code == 1
        assert "Config file not found" in result.output
        mock_exec.assert_not_called()
