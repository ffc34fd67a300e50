"""Tests for monorelease.cli."""

from __future__ import annotations

import subprocess
import urllib.error
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from monorelease.cli import cli
from monorelease.models import ExecutionContext


@patch("monorelease.cli.check_git_policy", return_value=True)
@patch("monorelease.cli.run_publish")
def test_flags_build_execution_context(mock_run: MagicMock, mock_policy: MagicMock) -> None:
    result = CliRunner().invoke(
        cli,
        [
            "publish",
            "-a",
            "-b",
            "main",
            "-p",
            "--registry",
            "https://private.example/",
            "--auth-token",
            "tok",
            "--add-commit-details",
        ],
    )

    assert result.exit_code == 0, result.output
    ctx = mock_run.call_args.args[0]
    assert ctx == ExecutionContext(
        apply=True,
        target_branch="main",
        publish=True,
        registry_url="https://private.example/",
        auth_token="tok",
        add_commit_details=True,
    )


@patch("monorelease.cli.check_git_policy", return_value=True)
@patch("monorelease.cli.run_publish")
def test_no_flags_is_dry_run(mock_run: MagicMock, mock_policy: MagicMock) -> None:
    result = CliRunner().invoke(cli, ["publish"])

    assert result.exit_code == 0
    assert mock_run.call_args.args[0] == ExecutionContext()


@patch("monorelease.cli.check_git_policy")
@patch("monorelease.cli.run_publish")
def test_conflicting_prerelease_options(mock_run: MagicMock, mock_policy: MagicMock) -> None:
    result = CliRunner().invoke(
        cli, ["publish", "--prerelease-name", "rc1", "--suffix", "dev1"]
    )

    assert result.exit_code == 2
    assert "cannot be used together" in result.output
    mock_policy.assert_not_called()
    mock_run.assert_not_called()


@patch("monorelease.cli.run_publish")
def test_include_all_requires_publish(mock_run: MagicMock) -> None:
    result = CliRunner().invoke(cli, ["publish", "--include-all"])

    assert result.exit_code == 2
    assert "--publish" in result.output
    mock_run.assert_not_called()


@patch("monorelease.cli.check_git_policy", return_value=False)
@patch("monorelease.cli.run_publish")
def test_policy_failure_exits_1(mock_run: MagicMock, mock_policy: MagicMock) -> None:
    result = CliRunner().invoke(cli, ["publish", "-a"])

    assert result.exit_code == 1
    mock_run.assert_not_called()


@patch("monorelease.cli.check_git_policy", return_value=True)
@patch("monorelease.cli.run_publish")
def test_command_failure_exits_1(mock_run: MagicMock, mock_policy: MagicMock) -> None:
    mock_run.side_effect = subprocess.CalledProcessError(
        128, ("uv", "publish", "--token", "tok")
    )

    result = CliRunner().invoke(cli, ["publish", "-p", "-n", "tok"])

    assert result.exit_code == 1
    assert "uv exited with status 128" in result.output
    assert "tok" not in result.output


@patch("monorelease.cli.check_git_policy", return_value=True)
@patch("monorelease.cli.run_publish")
def test_unreachable_index_exits_1(mock_run: MagicMock, mock_policy: MagicMock) -> None:
    mock_run.side_effect = urllib.error.URLError("connection refused")

    result = CliRunner().invoke(cli, ["publish", "-p", "--include-all"])

    assert result.exit_code == 1
    assert "connection refused" in result.output
