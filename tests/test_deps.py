"""Tests for monorelease.deps."""

from __future__ import annotations

from pathlib import Path

from monorelease.deps import (
    allows_version,
    dep_canonical_name,
    retarget_dep,
    rewrite_pyproject,
)


class TestDepCanonicalName:
    def test_simple_name(self) -> None:
        assert dep_canonical_name("requests") == "requests"

    def test_with_version_bound(self) -> None:
        assert dep_canonical_name("requests>=2.0,<3.0") == "requests"

    def test_with_extras(self) -> None:
        assert dep_canonical_name("requests[security]>=2.0") == "requests"

    def test_normalizes_underscores_and_case(self) -> None:
        assert dep_canonical_name("My_Package>=1.0") == "my-package"


class TestAllowsVersion:
    def test_exact_pin(self) -> None:
        assert allows_version("pkg==1.0.0", "1.0.0")
        assert not allows_version("pkg==1.0.0", "1.0.1")

    def test_lower_bound(self) -> None:
        assert allows_version("pkg>=1.0", "2.0.0")

    def test_upper_bound(self) -> None:
        assert not allows_version("pkg>=1.0,<2", "2.0.0")

    def test_prerelease_counts(self) -> None:
        assert allows_version("pkg>=1.0", "1.1.0rc1")


class TestRetargetDep:
    def test_keeps_exact_pin(self) -> None:
        assert retarget_dep("pkg==1.0.0", "1.1.0") == "pkg==1.1.0"

    def test_keeps_compatible_release(self) -> None:
        assert retarget_dep("pkg~=1.0", "2.0.0") == "pkg~=2.0"

    def test_compatible_release_keeps_its_width(self) -> None:
        assert retarget_dep("pkg~=1.0", "2.1.0") == "pkg~=2.1"
        assert retarget_dep("pkg~=1.0.0", "1.2.0") == "pkg~=1.2.0"
        assert retarget_dep("pkg~=1.0.0", "2.1") == "pkg~=2.1.0"

    def test_compatible_release_admits_later_minor(self) -> None:
        assert allows_version(retarget_dep("pkg~=1.0", "2.0.0"), "2.1.0")

    def test_compatible_release_keeps_prerelease(self) -> None:
        assert retarget_dep("pkg~=1.0", "2.0.0rc1") == "pkg~=2.0.0rc1"

    def test_range_becomes_lower_bound(self) -> None:
        assert retarget_dep("pkg>=1,<2", "2.0.0") == "pkg>=2.0.0"

    def test_bare_name(self) -> None:
        assert retarget_dep("pkg", "1.2.0") == "pkg>=1.2.0"

    def test_preserves_extras_sorted(self) -> None:
        assert retarget_dep("pkg[z,a]==1.0", "3.0.0") == "pkg[a,z]==3.0.0"

    def test_preserves_marker(self) -> None:
        result = retarget_dep('pkg==1.0; python_version >= "3.10"', "1.1.0")
        assert result == 'pkg==1.1.0; python_version >= "3.10"'


class TestRewritePyproject:
    def test_updates_version(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {})
        assert 'version = "2.0.0"' in tmp_pyproject.read_text()

    def test_retargets_internal_deps(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"internal-dep": "1.5.0"})
        assert "internal-dep==1.5.0" in tmp_pyproject.read_text()

    def test_retargets_optional_deps(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"another-internal": "0.8.0"})
        assert '"another-internal~=0.8"' in tmp_pyproject.read_text()

    def test_retargets_dependency_groups(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"group-internal": "1.0.0"})
        assert "group-internal>=1.0.0" in tmp_pyproject.read_text()

    def test_preserves_external_deps(self, tmp_pyproject: Path) -> None:
        rewrite_pyproject(tmp_pyproject, "2.0.0", {"internal-dep": "1.5.0"})
        content = tmp_pyproject.read_text()
        assert '"requests>=2.0"' in content
        assert '"pytest>=8.0"' in content
