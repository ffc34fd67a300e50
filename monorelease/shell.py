"""Shell and git utilities.

Every side-effecting command of the publish pipeline goes through
``execute()``, which prints what it is about to do and only spawns the
process when its gate is open. Read-only helpers (``git()``) run directly.
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

EXECUTING = "EXECUTING"
DRYRUN = "DRYRUN"


def git(*args: str, check: bool = True) -> str:
    """Run a read-only git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., config lookup).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(["git", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def run(
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary command, streaming its output to the terminal."""
    return subprocess.run(args, cwd=cwd, env=env, check=check)


def build_env(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Copy the current process environment and overlay ``overrides``."""
    env = dict(os.environ)
    if overrides:
        env.update(overrides)
    return env


def log_action(should_run: bool, description: str) -> None:
    """Print a single gated action line.

    Used directly for file mutations, and by ``execute()`` for commands.
    """
    print(f"\n* {EXECUTING if should_run else DRYRUN}: {description}")


def _relative_dir(cwd: str | Path | None) -> str:
    if cwd is None:
        return ""
    rel = os.path.relpath(Path(cwd).resolve(), Path.cwd().resolve())
    return "" if rel == "." else f" ({rel})"


def execute(
    should_run: bool,
    command: str,
    args: Sequence[str] = (),
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    secrets: Iterable[str] = (),
) -> None:
    """Announce a command and run it only if ``should_run`` is set.

    The announcement is unconditional so that a dry run prints the full plan.
    A failing command raises ``subprocess.CalledProcessError``; nothing here
    catches it.

    Args:
        should_run: Gate for actually spawning the process.
        command: Executable name (e.g., "git", "uv").
        args: Arguments for the command.
        cwd: Working directory; defaults to the current directory.
        env: Variables overlaid on a copy of the process environment.
        secrets: Argument values to print as ``***``.
    """
    hidden = {s for s in secrets if s}
    shown = " ".join("***" if a in hidden else a for a in args)
    log_action(should_run, f"{command} {shown}{_relative_dir(cwd)}".rstrip())

    if should_run:
        run(command, *args, cwd=cwd, env=build_env(env))


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the publish pipeline in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def fatal(msg: str) -> None:
    """Print an error message and exit with code 1.

    Use for unrecoverable errors that should halt the pipeline.
    """
    print(f"ERROR: {msg}", file=sys.stderr)
    sys.exit(1)
