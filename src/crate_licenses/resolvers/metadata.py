"""Interpretation of ``cargo metadata`` JSON documents.

This module converts the ``cargo metadata --format-version 1`` output into
Package objects. It is shared by the live cargo resolver and the offline
resolver that reads a previously captured document.

Example document structure::

    {
        "packages": [{"id": "...", "name": "serde", "version": "1.0.197",
                      "license": "MIT OR Apache-2.0",
                      "manifest_path": ".../serde-1.0.197/Cargo.toml", ...}],
        "workspace_members": ["path+file:///work/app#0.1.0"],
        "resolve": {"nodes": [{"id": "...", "deps": [
            {"pkg": "...", "dep_kinds": [{"kind": null, "target": null}]}
        ]}]},
        "workspace_root": "/work/app"
    }
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from crate_licenses.errors import ResolutionError
from crate_licenses.models import BuildConfig, Package
from crate_licenses.resolvers.base import BaseResolver

logger = logging.getLogger(__name__)

# dep_kinds "kind" values that end up linked into the final artifact
_LINKED_KINDS = {None, "normal", "build"}


def _edge_kinds(dep: dict[str, Any]) -> set[Optional[str]]:
    # Older cargo releases omit dep_kinds; treat those edges as normal.
    kinds = dep.get("dep_kinds")
    if not kinds:
        return {None}
    return {kind.get("kind") for kind in kinds}


def _reachable_ids(
    resolve: Optional[dict[str, Any]],
    roots: set[str],
    include_dev: bool,
) -> Optional[set[str]]:
    """Walk the resolve graph from the workspace members.

    Returns:
        Ids of every node reachable through linked edges, or None when the
        document carries no usable resolve graph.
    """
    if not resolve or not resolve.get("nodes"):
        return None

    nodes = {node["id"]: node for node in resolve["nodes"]}
    start = roots & nodes.keys()
    if not start:
        return None

    seen = set(start)
    stack = sorted(start)
    while stack:
        node_id = stack.pop()
        node = nodes.get(node_id, {})
        if "deps" in node:
            edges = [(dep["pkg"], _edge_kinds(dep)) for dep in node["deps"]]
        else:
            edges = [(dep_id, {None}) for dep_id in node.get("dependencies", [])]

        for dep_id, kinds in edges:
            linked = bool(kinds & _LINKED_KINDS)
            if include_dev and node_id in start and "dev" in kinds:
                linked = True
            if linked and dep_id not in seen:
                seen.add(dep_id)
                stack.append(dep_id)

    return seen


def parse_metadata(data: dict[str, Any], include_dev: bool = False) -> list[Package]:
    """Build packages from a ``cargo metadata`` document.

    A package is a workspace member when its id is listed in
    ``workspace_members``, or when it is a path dependency (no registry or
    git source) living under ``workspace_root``.

    Args:
        data: Parsed JSON document.
        include_dev: Keep dev-dependencies of workspace members.

    Returns:
        Packages reachable from the workspace members, in document order.

    Raises:
        ResolutionError: If required top-level fields are missing.
    """
    try:
        workspace_root = Path(data["workspace_root"])
        raw_packages = data["packages"]
    except (KeyError, TypeError) as e:
        raise ResolutionError(f"Malformed cargo metadata: missing {e}") from e

    members = set(data.get("workspace_members") or [])
    reachable = _reachable_ids(data.get("resolve"), members, include_dev)

    packages: list[Package] = []
    for pkg in raw_packages:
        pkg_id = pkg.get("id")
        if reachable is not None and pkg_id not in reachable:
            logger.debug("Skipping %s: not linked in this configuration", pkg_id)
            continue

        try:
            manifest_path = Path(pkg["manifest_path"])
            name = pkg["name"]
            version = pkg["version"]
        except KeyError as e:
            raise ResolutionError(
                f"Malformed cargo metadata: package missing {e}",
                identifier=pkg_id,
            ) from e

        is_member = pkg_id in members or (
            pkg.get("source") is None and manifest_path.is_relative_to(workspace_root)
        )

        packages.append(
            Package(
                name=name,
                version=version,
                license=pkg.get("license"),
                source_dir=manifest_path.parent,
                is_workspace_member=is_member,
                url=pkg.get("homepage") or pkg.get("repository"),
                license_file=pkg.get("license_file"),
            )
        )

    return packages


class MetadataFileResolver(BaseResolver):
    """Resolver that reads a captured ``cargo metadata`` JSON file.

    Feature and target evaluation already happened when the file was
    produced, so those parts of the build configuration are ignored.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def name(self) -> str:
        return "metadata file"

    def resolve(self, config: BuildConfig) -> list[Package]:
        if config.features or config.targets:
            logger.debug(
                "Ignoring features/targets for pre-resolved %s", self.path
            )

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ResolutionError(
                f"Cannot read metadata file {self.path}: {e}", identifier=str(self.path)
            ) from e
        except json.JSONDecodeError as e:
            raise ResolutionError(
                f"Invalid JSON in {self.path}: {e}", identifier=str(self.path)
            ) from e

        return parse_metadata(data, include_dev=config.include_dev)
