"""Package selection, deduplication and ordering.

Turns raw resolver output into the package list the report is built from:
workspace members dropped, one package per (name, version), sorted by name
(case-sensitive, code point order) and then by semantic version precedence.
"""

import logging
import re
from collections import Counter
from collections.abc import Iterable

from crate_licenses.models import Package

logger = logging.getLogger(__name__)

_SEMVER = re.compile(
    r"^(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z.-]+))?"  # pre-release
    r"(?:\+([0-9A-Za-z.-]+))?$"  # build metadata
)


def _identifier_key(identifier: str) -> tuple:
    # Numeric identifiers have lower precedence than alphanumeric ones.
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


def version_key(version: str) -> tuple:
    """Return a sort key implementing semantic version precedence.

    Pre-releases sort before their release. Build metadata does not affect
    precedence and only breaks ties textually. Strings that are not valid
    semantic versions sort after all valid ones, in code point order.

    Args:
        version: Version string such as "1.0.0-beta.2".

    Returns:
        A tuple suitable for use as a sort key.
    """
    match = _SEMVER.match(version)
    if not match:
        return (1, (), (), version)

    major, minor, patch, pre, _build = match.groups()
    if pre is None:
        pre_key: tuple = (1,)
    else:
        pre_key = (0, tuple(_identifier_key(part) for part in pre.split(".")))
    return (0, (int(major), int(minor), int(patch)), pre_key, version)


def package_sort_key(package: Package) -> tuple:
    return (package.name, version_key(package.version))


def select_packages(packages: Iterable[Package]) -> list[Package]:
    """Filter, deduplicate and order resolved packages.

    Args:
        packages: Resolver output, possibly with duplicates and members.

    Returns:
        Non-workspace packages, unique by (name, version), in report order.
    """
    unique: dict[tuple[str, str], Package] = {}
    for package in packages:
        if package.is_workspace_member:
            logger.debug("Excluding workspace member %s", package.full_name)
            continue
        unique.setdefault(package.key, package)

    return sorted(unique.values(), key=package_sort_key)


def versioned_names(packages: Iterable[Package]) -> set[str]:
    """Return crate names present with more than one version."""
    counts = Counter(name for name, _version in {p.key for p in packages})
    return {name for name, count in counts.items() if count > 1}
