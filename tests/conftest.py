"""Pytest configuration and fixtures."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Optional

import pytest

from crate_licenses.models import Package

FIXTURES_DIR = Path(__file__).parent / "fixtures"
REGISTRY_SOURCE = "registry+https://github.com/rust-lang/crates.io-index"


@pytest.fixture
def cargo_metadata() -> dict:
    """Return the sample ``cargo metadata`` document."""
    return json.loads((FIXTURES_DIR / "cargo_metadata.json").read_text(encoding="utf-8"))


@pytest.fixture
def make_crate(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory creating materialized crate directories.

    The factory takes a crate name, version and a mapping of relative file
    paths to contents, and returns the crate's source directory.
    """

    def _make(name: str, version: str, files: Optional[dict[str, str]] = None) -> Path:
        crate_dir = tmp_path / "registry" / f"{name}-{version}"
        crate_dir.mkdir(parents=True, exist_ok=True)
        (crate_dir / "Cargo.toml").write_text(
            f'[package]\nname = "{name}"\nversion = "{version}"\n', encoding="utf-8"
        )
        for relative, content in (files or {}).items():
            path = crate_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return crate_dir

    return _make


@pytest.fixture
def make_package(make_crate: Callable[..., Path]) -> Callable[..., Package]:
    """Return a factory creating a Package backed by a crate directory."""

    def _make(
        name: str,
        version: str = "1.0.0",
        files: Optional[dict[str, str]] = None,
        license: Optional[str] = "MIT",
        **kwargs,
    ) -> Package:
        source_dir = make_crate(name, version, files)
        return Package(
            name=name, version=version, license=license, source_dir=source_dir, **kwargs
        )

    return _make


@pytest.fixture
def write_metadata(tmp_path: Path) -> Callable[[list[Package]], Path]:
    """Return a factory writing a metadata document for the given packages.

    A workspace member named ``app`` rooted at ``tmp_path / "app"`` is always
    added. The document has no resolve graph, so every package is kept.
    """

    def _write(packages: list[Package]) -> Path:
        workspace_root = tmp_path / "app"
        workspace_root.mkdir(exist_ok=True)
        member_id = f"path+file://{workspace_root}#0.1.0"
        raw = [
            {
                "name": "app",
                "version": "0.1.0",
                "id": member_id,
                "license": "MIT",
                "license_file": None,
                "source": None,
                "manifest_path": str(workspace_root / "Cargo.toml"),
                "homepage": None,
                "repository": None,
            }
        ]
        for package in packages:
            raw.append(
                {
                    "name": package.name,
                    "version": package.version,
                    "id": f"{REGISTRY_SOURCE}#{package.name}@{package.version}",
                    "license": package.license,
                    "license_file": package.license_file,
                    "source": REGISTRY_SOURCE,
                    "manifest_path": str(package.source_dir / "Cargo.toml"),
                    "homepage": package.url,
                    "repository": None,
                }
            )

        document = {
            "packages": raw,
            "workspace_members": [member_id],
            "resolve": None,
            "workspace_root": str(workspace_root),
            "version": 1,
        }
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write
