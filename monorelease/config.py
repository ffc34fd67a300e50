"""Workspace-level settings.

Read from the ``[tool.monorelease]`` table of the workspace root
``pyproject.toml``. Keys use TOML-style dashes::

    [tool.monorelease]
    changes-dir = ".changes"
    dist-dir = "dist"
    remote = "origin"
    check-url = "https://pypi.org/simple/"
    index-url = "https://pypi.org"
    allowed-email-patterns = ['.*@example\\.com']
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .toml import get_tool_table, load_pyproject

DEFAULT_REGISTRY_URL = "https://pypi.org"
DEFAULT_CHECK_URL = "https://pypi.org/simple/"


class Settings(BaseModel):
    """Validated ``[tool.monorelease]`` settings with defaults."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    root: Path = Field(default_factory=Path.cwd)
    changes_dir: str = Field(default=".changes", alias="changes-dir")
    dist_dir: str = Field(default="dist", alias="dist-dir")
    remote: str = "origin"
    check_url: str | None = Field(default=None, alias="check-url")
    index_url: str | None = Field(default=None, alias="index-url")
    allowed_email_patterns: list[str] = Field(
        default_factory=list, alias="allowed-email-patterns"
    )

    @property
    def changes_path(self) -> Path:
        return self.root / self.changes_dir

    def resolve_check_url(self, registry_url: str | None) -> str | None:
        """Index consulted by ``uv publish --check-url``.

        An explicit setting always wins. Otherwise PyPI is used, except when
        publishing to an overridden registry, where PyPI's files say nothing
        about what the target index already holds.
        """
        if self.check_url:
            return self.check_url
        if registry_url:
            return None
        return DEFAULT_CHECK_URL

    def resolve_index_url(self, registry_url: str | None) -> str | None:
        """Index whose JSON API is asked which versions already exist.

        An explicit setting always wins, for registries whose upload endpoint
        and JSON API live on different hosts. ``None`` means PyPI.
        """
        return self.index_url or registry_url


def load_settings(root: Path | None = None) -> Settings:
    """Load settings from ``<root>/pyproject.toml``, falling back to defaults."""
    root = root or Path.cwd()
    pyproject = root / "pyproject.toml"
    data = get_tool_table(load_pyproject(pyproject)) if pyproject.exists() else {}
    return Settings.model_validate({**data, "root": root})
