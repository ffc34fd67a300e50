"""Data models for monorelease.

These Pydantic models represent the core data structures shared by the
change resolver, the changelog generator and the publish pipeline.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChangeType(IntEnum):
    """Kind of version movement requested for a package.

    Ordered so that comparisons mean "bigger change". Anything above
    ``dependency`` moves the package's own version and is published and
    tagged; ``dependency`` only rewrites pins to other workspace packages.
    """

    none = 0
    dependency = 1
    patch = 2
    minor = 3
    major = 4


class ChangeEntry(BaseModel):
    """A single line item from a change file.

    Attributes:
        type: Requested change type.
        comment: Human readable description for the changelog.
        author: Commit author email, filled by ``--add-commit-details``.
        commit: Commit hash that introduced the change file.
    """

    type: ChangeType
    comment: str = ""
    author: str | None = None
    commit: str | None = None


class ChangeRecord(BaseModel):
    """A resolved version bump for one package.

    Attributes:
        package_name: Canonical name of the package.
        change_type: The largest change type requested for the package.
        old_version: Version currently in the package's pyproject.toml.
        new_version: Version the package is moved to.
        changes: Entries contributing to this record, in file order.
    """

    package_name: str
    change_type: ChangeType
    old_version: str
    new_version: str
    changes: list[ChangeEntry] = Field(default_factory=list)

    @property
    def is_publishable(self) -> bool:
        """Whether this record produces a new release (publish and tag)."""
        return self.change_type > ChangeType.dependency


class ProjectDescriptor(BaseModel):
    """Metadata for a single package in the workspace.

    Attributes:
        name: Canonical package name.
        path: Relative path from workspace root to the package directory.
        version: Current version string from pyproject.toml.
        should_publish: Whether the package is ever uploaded to an index.
        deps: Internal (workspace) dependency names.
        requirements: Internal dependency name → original PEP 508 string.
    """

    name: str
    path: str
    version: str
    should_publish: bool = True
    deps: list[str] = Field(default_factory=list)
    requirements: dict[str, str] = Field(default_factory=dict)


class PrereleaseToken(BaseModel):
    """Prerelease marker built from ``--prerelease-name`` or ``--suffix``.

    A prerelease name is appended to the bumped version (``1.2.0rc1``); a
    suffix is appended to the unbumped version (``1.1.0.dev7``).
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    suffix: str | None = None

    @model_validator(mode="after")
    def _exclusive(self) -> PrereleaseToken:
        if self.name and self.suffix:
            raise ValueError("--prerelease-name and --suffix cannot be used together")
        return self

    @property
    def has_value(self) -> bool:
        return bool(self.name or self.suffix)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.name)

    @property
    def is_suffix(self) -> bool:
        return bool(self.suffix)


class ExecutionContext(BaseModel):
    """Resolved command line switches for one publish run.

    Every gate in the pipeline is derived from this object; it never
    changes after construction.
    """

    model_config = ConfigDict(frozen=True)

    apply: bool = False
    publish: bool = False
    include_all: bool = False
    force: bool = False
    add_commit_details: bool = False
    regenerate_changelogs: bool = False
    target_branch: str | None = None
    registry_url: str | None = None
    auth_token: str | None = None
    prerelease_name: str | None = None
    suffix: str | None = None

    @model_validator(mode="after")
    def _check_combinations(self) -> ExecutionContext:
        if self.prerelease_name and self.suffix:
            raise ValueError("--prerelease-name and --suffix cannot be used together")
        if self.include_all and not self.publish:
            raise ValueError("--include-all has no effect without --publish")
        if self.include_all and (self.prerelease_name or self.suffix):
            raise ValueError(
                "--include-all publishes existing versions and cannot be combined "
                "with --prerelease-name or --suffix"
            )
        return self

    @property
    def commits(self) -> bool:
        """Gate for git operations."""
        return bool(self.target_branch)

    @property
    def tags(self) -> bool:
        """Gate for tag creation: only for real default-index publishes."""
        return bool(self.target_branch) and self.publish and not self.registry_url

    @property
    def prerelease_token(self) -> PrereleaseToken:
        return PrereleaseToken(name=self.prerelease_name, suffix=self.suffix)
