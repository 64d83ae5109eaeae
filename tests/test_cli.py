"""
Tests for the gupl CLI.
"""

import json
import os
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from gupl.cli import cli
from gupl.errors import EXTERNAL_TOOL_ERROR, ExternalToolFailure

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _last_json(output):
    """Last JSON object printed by a command."""
    lines = [line for line in output.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


@pytest.fixture
def runner(tmp_path):
    """CliRunner with HOME pointed at an empty directory."""
    env = {"HOME": str(tmp_path / "home")}
    with patch.dict(os.environ, env):
        for key in [k for k in os.environ if k.startswith("GUPL_")]:
            del os.environ[key]
        yield CliRunner()


class TestGenerateCommand:
    """gupl generate"""

    def test_generate_json(self, runner):
        result = runner.invoke(cli, ["generate", "2"])
        assert result.exit_code == 0
        data = _last_json(result.output)
        assert data["key"] == 2
        assert "func (t Tuple[T1, T2]) Unpack() (T1, T2) {" in data["files"]["tuple.go"]

    def test_generate_to_directory(self, runner, tmp_path):
        target = tmp_path / "out"
        result = runner.invoke(cli, ["generate", "3", "--output", str(target)])
        assert result.exit_code == 0
        assert sorted(p.name for p in target.iterdir()) == ["LICENSE", "go.mod", "tuple.go"]
        assert _last_json(result.output)["files"] == ["go.mod", "tuple.go", "LICENSE"]

    def test_generate_pretty(self, runner):
        result = runner.invoke(cli, ["generate", "1", "--pretty"])
        assert result.exit_code == 0

    def test_generate_negative_rejected(self, runner):
        result = runner.invoke(cli, ["generate", "--", "-1"])
        assert result.exit_code == 2


class TestMaterializeCommand:
    """gupl materialize / gupl list"""

    @requires_git
    def test_materialize_and_list(self, runner, tmp_path):
        root = str(tmp_path / "store")

        first = runner.invoke(cli, ["materialize", "4", "--root", root])
        assert first.exit_code == 0
        record = _last_json(first.output)
        assert record["key"] == 4
        assert record["created"] is True
        assert Path(record["path"]) == Path(root).resolve() / "tuple" / "4"
        assert len(record["commit"]) == 40

        second = runner.invoke(cli, ["materialize", "4", "--root", root])
        assert _last_json(second.output)["created"] is False
        assert _last_json(second.output)["commit"] == record["commit"]

        listing = runner.invoke(cli, ["list", "--root", root])
        assert listing.exit_code == 0
        assert _last_json(listing.output)["key"] == 4

    def test_list_empty_pretty(self, runner, tmp_path):
        result = runner.invoke(cli, ["list", "--root", str(tmp_path / "empty"), "--pretty"])
        assert result.exit_code == 0

    def test_git_failure_exit_code(self, runner, tmp_path):
        with patch("gupl.infra.repo_store.RepositoryStore.get_or_create",
                   side_effect=ExternalToolFailure("git command failed", returncode=128)):
            result = runner.invoke(cli, ["materialize", "1", "--root", str(tmp_path)])
        assert result.exit_code == EXTERNAL_TOOL_ERROR
        error = _last_json(result.output)
        assert error["type"] == "ExternalToolFailure"


class TestConfigCommand:
    """gupl config show"""

    def test_show(self, runner):
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["public"]["host"] == "pkg.golang.fail"

    @patch.dict(os.environ, {"GUPL_SERVER_PORT": "9999"})
    def test_show_env_override(self, runner):
        result = runner.invoke(cli, ["config", "show"])
        assert json.loads(result.output)["server"]["port"] == 9999


class TestServeCommand:
    """gupl serve wiring (server itself is covered in test_server)."""

    def test_serve_applies_options(self, runner, tmp_path):
        with patch("gupl.server.run_server") as mock_run:
            result = runner.invoke(cli, ["serve", "--port", "0", "--root", str(tmp_path), "--host", "127.0.0.1"])
        assert result.exit_code == 0
        config = mock_run.call_args.args[0]
        assert config["server"] == {"host": "127.0.0.1", "port": 0}
        assert config["storage"]["root"] == str(tmp_path)
