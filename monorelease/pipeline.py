"""Publish pipeline: resolve → apply → commit → publish → tag → merge.

Two workflows share the gated git and index helpers of ``Publisher``:

Selective release (default):
1. Resolve pending change files into version bumps
2. Create a temporary branch
3. Rewrite pyproject.toml versions and internal pins
4. Update changelogs and delete consumed change files (skipped for prereleases)
5. Commit and push the temporary branch
6. Build and upload every package whose own version moved
7. Tag the uploaded versions and push the tags
8. Merge the temporary branch into the target branch and delete it

Publish all (``--include-all --publish``): upload and tag every publishable
package whose current version is not on the index yet.

Each category of side effect has its own gate, all derived from the
ExecutionContext: files (``apply``), git (``target_branch``), index uploads
(``publish``) and tags (``target_branch`` and ``publish`` without a
``registry_url`` override). With no flags the whole plan is printed and
nothing is changed.
"""

from __future__ import annotations

import secrets
import sys
import time
from collections.abc import Mapping, Sequence

from .changelog import regenerate_changelogs, update_changelogs
from .changes import (
    ChangeFiles,
    find_change_requests,
    sort_change_requests,
    update_packages,
)
from .config import Settings, load_settings
from .graph import topo_sort
from .models import ChangeRecord, ExecutionContext, ProjectDescriptor
from .registry import is_published
from .shell import execute, step
from .tags import make_tag_name
from .versions import normalize_version
from .workspace import discover_packages

COMMIT_MESSAGE = "Applying package updates."


def make_temp_branch_name() -> str:
    """Name of the per-run branch, e.g. ``publish-1760812345678-3fa9c1``."""
    return f"publish-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class ReleaseJournal:
    """Side effects that actually happened during a run.

    The pipeline never rolls back; when a command fails the journal tells the
    operator what is left to clean up by hand.
    """

    def __init__(self) -> None:
        self.done: list[str] = []

    def record(self, happened: bool, description: str) -> None:
        if happened:
            self.done.append(description)

    def report(self) -> None:
        if not self.done:
            print("\nPublish aborted before any change was made.", file=sys.stderr)
            return
        print(
            "\nPublish aborted. These steps already ran and may need manual cleanup:",
            file=sys.stderr,
        )
        for description in self.done:
            print(f"  - {description}", file=sys.stderr)


class Publisher:
    """Gated publish operations for one run.

    Args:
        ctx: Command line switches for this run.
        packages: Map of package name → ProjectDescriptor (read only).
        settings: Workspace settings.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        packages: Mapping[str, ProjectDescriptor],
        settings: Settings,
    ) -> None:
        self.ctx = ctx
        self.packages = packages
        self.settings = settings
        self.journal = ReleaseJournal()

    @property
    def target_branch(self) -> str:
        return self.ctx.target_branch or "<target-branch>"

    # -- git ---------------------------------------------------------------

    def git_checkout(self, branch: str, create: bool = False) -> None:
        args = ["checkout", "-b", branch] if create else ["checkout", branch]
        execute(self.ctx.commits, "git", args)
        if create:
            self.journal.record(self.ctx.commits, f"created local branch {branch}")

    def git_add_changes(self) -> None:
        execute(self.ctx.commits, "git", ["add", "."])

    def git_commit(self) -> None:
        execute(self.ctx.commits, "git", ["commit", "-m", COMMIT_MESSAGE])
        self.journal.record(self.ctx.commits, "committed package updates")

    def git_push(self, branch: str) -> None:
        execute(
            self.ctx.commits,
            "git",
            ["push", self.settings.remote, f"HEAD:{branch}", "--follow-tags", "--verbose"],
        )
        self.journal.record(self.ctx.commits, f"pushed {branch} to {self.settings.remote}")

    def git_pull(self) -> None:
        execute(self.ctx.commits, "git", ["pull", self.settings.remote, self.target_branch])

    def git_merge(self, branch: str) -> None:
        execute(self.ctx.commits, "git", ["merge", branch, "--no-edit"])
        self.journal.record(self.ctx.commits, f"merged {branch} into {self.target_branch}")

    def git_delete_branch(self, branch: str) -> None:
        execute(self.ctx.commits, "git", ["branch", "-d", branch])
        execute(self.ctx.commits, "git", ["push", self.settings.remote, "--delete", branch])

    def git_add_tag(self, package_name: str, version: str) -> None:
        """Create an annotated tag; only for real default-index publishes."""
        tag = make_tag_name(package_name, version)
        execute(self.ctx.tags, "git", ["tag", "-a", tag, "-m", f"{package_name} v{version}"])
        self.journal.record(self.ctx.tags, f"created tag {tag}")

    def git_add_tags(self, ordered_changes: Sequence[ChangeRecord]) -> None:
        step("Tagging published packages")
        for change in ordered_changes:
            if change.is_publishable and self.packages[change.package_name].should_publish:
                self.git_add_tag(change.package_name, change.new_version)

    # -- index -------------------------------------------------------------

    def publish_package(self, project: ProjectDescriptor, version: str) -> None:
        """Build ``project`` and upload ``version`` to the index.

        Packages that never publish are skipped without any output.
        """
        if not project.should_publish:
            return

        out_dir = f"{self.settings.dist_dir}/{project.name}"
        execute(self.ctx.publish, "uv", ["build", project.path, "--out-dir", out_dir])

        args = ["publish"]
        if self.ctx.auth_token:
            args += ["--token", self.ctx.auth_token]
        check_url = self.settings.resolve_check_url(self.ctx.registry_url)
        if check_url and not self.ctx.force:
            args += ["--check-url", check_url]
        # Only this version's files; earlier builds may linger in out_dir.
        stem = f"{out_dir}/{project.name.replace('-', '_')}-{normalize_version(version)}"
        args += [f"{stem}-*.whl", f"{stem}.tar.gz"]

        env = {"UV_PUBLISH_URL": self.ctx.registry_url} if self.ctx.registry_url else None
        execute(self.ctx.publish, "uv", args, env=env, secrets=[self.ctx.auth_token or ""])
        self.journal.record(self.ctx.publish, f"uploaded {project.name} {version}")

    # -- workflows ---------------------------------------------------------

    def publish_changes(self) -> None:
        """Selective release of the packages named by pending change files."""
        token = self.ctx.prerelease_token
        change_files = ChangeFiles(self.settings.changes_path)
        all_changes = find_change_requests(
            self.packages, change_files, self.ctx.add_commit_details, token
        )
        ordered = sort_change_requests(all_changes, self.packages)

        if not ordered:
            print("\nNo change requests found. Nothing to publish.")
            return

        temp_branch = make_temp_branch_name()
        step(f"Preparing {temp_branch}")
        self.git_checkout(temp_branch, create=True)

        update_packages(all_changes, self.packages, self.ctx.apply, token)
        self.journal.record(self.ctx.apply, "rewrote package manifests")

        # Prereleases keep change files and changelogs for the final release.
        if not token.has_value:
            update_changelogs(all_changes, self.packages, self.ctx.apply)
            self.journal.record(self.ctx.apply, "updated changelogs")
            really = self.ctx.apply or self.ctx.commits
            change_files.delete_all(really)
            self.journal.record(really, "deleted change files")

        step("Committing package updates")
        self.git_add_changes()
        self.git_commit()
        self.git_push(temp_branch)

        step("Publishing packages")
        for change in ordered:
            if change.is_publishable:
                self.publish_package(self.packages[change.package_name], change.new_version)

        self.git_add_tags(ordered)
        self.git_push(temp_branch)

        step(f"Merging {temp_branch} into {self.target_branch}")
        self.git_checkout(self.target_branch)
        self.git_pull()
        self.git_merge(temp_branch)
        self.git_push(self.target_branch)
        self.git_delete_branch(temp_branch)

    def publish_all(self) -> None:
        """Upload every publishable package missing from the index."""
        step("Publishing all packages")

        updated = False
        for name in topo_sort(self.packages):
            project = self.packages[name]
            if not project.should_publish:
                continue
            if self.ctx.force or not is_published(
                project, self.settings.resolve_index_url(self.ctx.registry_url)
            ):
                self.publish_package(project, project.version)
                self.git_add_tag(name, project.version)
                updated = True
            else:
                print(f"  Skip {name}. Not updated.")

        if updated:
            self.git_push(self.target_branch)


def run_publish(
    ctx: ExecutionContext,
    settings: Settings | None = None,
    packages: Mapping[str, ProjectDescriptor] | None = None,
) -> None:
    """Execute one publish run.

    Args:
        ctx: Command line switches for this run.
        settings: Workspace settings; loaded from pyproject.toml if omitted.
        packages: Project registry; discovered from the workspace if omitted.

    Raises:
        subprocess.CalledProcessError: When any executed command fails.
        OSError: When the package index cannot be queried.

    Whatever aborts the run, the steps already performed are printed first.
    """
    settings = settings or load_settings()
    if packages is None:
        packages = discover_packages(settings.root)

    if ctx.regenerate_changelogs:
        regenerate_changelogs(packages)
        return

    publisher = Publisher(ctx, packages, settings)
    try:
        if ctx.include_all and ctx.publish:
            publisher.publish_all()
        else:
            publisher.publish_changes()
    except Exception:
        publisher.journal.report()
        raise

    print(f"\n{'=' * 60}\nPublish finished successfully.\n{'=' * 60}")
