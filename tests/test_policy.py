"""Tests for monorelease.policy."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from monorelease.config import Settings
from monorelease.policy import check_git_policy


@patch("monorelease.policy.git")
def test_passes_with_email(mock_git: MagicMock) -> None:
    mock_git.side_effect = ["true", "dev@example.com"]
    assert check_git_policy(Settings())


@patch("monorelease.policy.git")
def test_fails_outside_work_tree(
    mock_git: MagicMock, capsys: pytest.CaptureFixture[str]
) -> None:
    mock_git.return_value = ""
    assert not check_git_policy(Settings())
    assert "work tree" in capsys.readouterr().err


@patch("monorelease.policy.git")
def test_fails_without_email(mock_git: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    mock_git.side_effect = ["true", ""]
    assert not check_git_policy(Settings())
    assert "user.email" in capsys.readouterr().err


@patch("monorelease.policy.git")
def test_email_patterns(mock_git: MagicMock) -> None:
    settings = Settings(allowed_email_patterns=[r".*@example\.com"])

    mock_git.side_effect = ["true", "dev@example.com"]
    assert check_git_policy(settings)

    mock_git.side_effect = ["true", "dev@gmail.com"]
    assert not check_git_policy(settings)
