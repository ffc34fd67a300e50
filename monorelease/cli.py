"""CLI entry point for monorelease."""

from __future__ import annotations

import subprocess
import sys

import click
from pydantic import ValidationError

from monorelease.config import load_settings
from monorelease.models import ExecutionContext
from monorelease.pipeline import run_publish
from monorelease.policy import check_git_policy


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(e["msg"].removeprefix("Value error, ") for e in exc.errors())


@click.group()
@click.version_option(package_name="monorelease")
def cli() -> None:
    """Change-file driven publishing for uv workspaces."""


@cli.command()
@click.option(
    "-a",
    "--apply",
    is_flag=True,
    help="Apply change requests to pyproject.toml, changelogs and change files.",
)
@click.option(
    "-b",
    "--target-branch",
    default=None,
    help="Commit, push and merge the applied changes into this branch.",
)
@click.option(
    "-p", "--publish", is_flag=True, help="Upload changed packages to the index."
)
@click.option(
    "--add-commit-details",
    is_flag=True,
    help="Record commit author and hash for each changelog comment.",
)
@click.option(
    "--regenerate-changelogs",
    is_flag=True,
    help="Rebuild every CHANGELOG.md from CHANGELOG.json and exit.",
)
@click.option(
    "-r",
    "--registry",
    "registry_url",
    default=None,
    help="Upload to this index instead of PyPI. Disables tagging.",
)
@click.option(
    "-n",
    "--auth-token",
    default=None,
    envvar="MONORELEASE_AUTH_TOKEN",
    help="Index token passed to uv publish.",
)
@click.option(
    "--include-all",
    is_flag=True,
    help="With --publish, upload every publishable package not on the index yet.",
)
@click.option(
    "--prerelease-name",
    default=None,
    help="Bump to a prerelease with this PEP 440 suffix (e.g. rc1).",
)
@click.option(
    "--suffix",
    default=None,
    help="Append this suffix to changed versions without bumping (e.g. dev5).",
)
@click.option(
    "--force",
    is_flag=True,
    help="Upload even if the version already exists on the index.",
)
def publish(**options: object) -> None:
    """Apply pending change files and publish the result.

    Without flags nothing is modified; every step is printed as DRYRUN.
    """
    click.echo('Starting "monorelease publish"')

    try:
        ctx = ExecutionContext(**options)
    except ValidationError as exc:
        raise click.UsageError(_validation_message(exc)) from exc

    settings = load_settings()
    if not check_git_policy(settings):
        sys.exit(1)

    try:
        run_publish(ctx, settings)
    except subprocess.CalledProcessError as exc:
        raise click.ClickException(
            f"{exc.cmd[0]} exited with status {exc.returncode}"
        ) from exc
    except (OSError, ValueError, RuntimeError) as exc:
        raise click.ClickException(str(exc)) from exc
