"""Package index queries.

Uses the JSON API served by PyPI and Warehouse-compatible indexes
(``/pypi/<name>/json``) to find which versions of a package already exist.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request

from packaging.utils import canonicalize_name, canonicalize_version

from .config import DEFAULT_REGISTRY_URL
from .models import ProjectDescriptor

TIMEOUT = 30


def json_api_base(registry_url: str | None = None) -> str:
    """Base URL of the JSON API for an index or upload endpoint.

    Warehouse serves uploads under ``/legacy/`` next to the JSON API, so
    ``https://test.pypi.org/legacy/`` maps to ``https://test.pypi.org``.
    """
    base = (registry_url or DEFAULT_REGISTRY_URL).rstrip("/")
    if base.endswith("/legacy"):
        base = base[: -len("/legacy")]
    return base


def published_versions(package_name: str, registry_url: str | None = None) -> set[str]:
    """Return every version of ``package_name`` the index knows about.

    A package the index has never seen (HTTP 404) has no versions. Any other
    HTTP or network error propagates.
    """
    base = json_api_base(registry_url)
    url = f"{base}/pypi/{canonicalize_name(package_name)}/json"
    try:
        with urllib.request.urlopen(url, timeout=TIMEOUT) as response:
            data = json.load(response)
    except urllib.error.HTTPError as exc:
        if exc.code == 404:
            return set()
        raise
    return set(data.get("releases", {}))


def is_published(project: ProjectDescriptor, registry_url: str | None = None) -> bool:
    """Whether the project's current version is already on the index."""
    wanted = canonicalize_version(project.version)
    return any(
        canonicalize_version(v) == wanted
        for v in published_versions(project.name, registry_url)
    )
