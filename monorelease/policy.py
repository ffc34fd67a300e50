"""Git policy checks run before any publish work starts."""

from __future__ import annotations

import re
import sys

from .config import Settings
from .shell import git


def check_git_policy(settings: Settings) -> bool:
    """Verify the checkout is usable for commits made by the pipeline.

    Requires a git work tree and a configured ``user.email``. When
    ``allowed-email-patterns`` is set, the email must fully match one of them.
    Problems are printed to stderr.
    """
    if git("rev-parse", "--is-inside-work-tree", check=False) != "true":
        print("ERROR: Not inside a git work tree.", file=sys.stderr)
        return False

    email = git("config", "user.email", check=False)
    if not email:
        print(
            "ERROR: git user.email is not set. Run:\n"
            '  git config user.email "you@example.com"',
            file=sys.stderr,
        )
        return False

    patterns = settings.allowed_email_patterns
    if patterns and not any(re.fullmatch(p, email) for p in patterns):
        print(
            f"ERROR: git user.email {email!r} does not match any allowed pattern:\n"
            + "\n".join(f"  - {p}" for p in patterns),
            file=sys.stderr,
        )
        return False

    return True
