"""Tests for the root CLI group and global flags."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from minicrm.cli import cli


@pytest.mark.usefixtures("_isolated_cwd")
class TestRootGroup:
    def test_no_subcommand_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "customer" in result.output

    def test_help_does_not_touch_database(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        cli_runner.invoke(cli, ["customer", "--help"])
        assert not (tmp_path / "data").exists()

    def test_json_flag(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "customer", "create", "--name", "Acme"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["ok"] is True
        assert payload["op"] == "create_customer"

    def test_log_json_flag(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--log-json", "db", "health"])
        assert result.exit_code == 0
