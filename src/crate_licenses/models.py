"""Core data models for crate_licenses.

This module defines the data structures passed between the resolver, the
license file matcher and the report assembler: resolved packages, the
build configuration they were resolved for, matched license files and
report entries.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from crate_licenses.errors import FileReadError

UNKNOWN_LICENSE = "UNKNOWN"


class FeatureSelection(str, Enum):
    """Base feature set requested from the resolver."""

    DEFAULT = "default"
    ALL = "all"
    NONE = "none"


@dataclass(frozen=True)
class BuildConfig:
    """Immutable build configuration handed to a resolver.

    Explicit features are additive on top of the base selection; conflicting
    combinations are passed through and left to the resolver.

    Attributes:
        feature_mode: Base feature set (default, all or none).
        features: Explicit features to activate in addition to the base set.
        targets: Target triples to filter platform-specific dependencies by.
            Empty means the resolver's host platform defaults.
        manifest_path: Optional path to the workspace Cargo.toml.
        include_dev: Whether dev-dependencies of workspace members are kept.
    """

    feature_mode: FeatureSelection = FeatureSelection.DEFAULT
    features: tuple[str, ...] = ()
    targets: tuple[str, ...] = ()
    manifest_path: Optional[Path] = None
    include_dev: bool = False


@dataclass(frozen=True)
class Package:
    """A resolved dependency unit.

    Frozen for hashability; constructed once by a resolver and never
    mutated afterwards.

    Attributes:
        name: Crate name (e.g., "serde").
        version: Exact version string (e.g., "1.0.197").
        license: Declared license expression, kept verbatim. May be None.
        source_dir: Directory holding the crate's materialized sources.
        is_workspace_member: True for local workspace packages.
        url: Homepage or repository URL, if declared.
        license_file: Explicit license file path declared in the manifest,
            relative to source_dir.
    """

    name: str
    version: str
    license: Optional[str]
    source_dir: Path
    is_workspace_member: bool = False
    url: Optional[str] = None
    license_file: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        """Return the (name, version) identity used for deduplication."""
        return (self.name, self.version)

    @property
    def full_name(self) -> str:
        """Return "name vVERSION" for messages and the summary."""
        return f"{self.name} v{self.version}"


@dataclass(frozen=True)
class LicenseFile:
    """A license file located inside a package's source directory.

    Attributes:
        path: Absolute path to the file.
        relative_path: Path relative to the directory it was found in,
            using forward slashes.
        score: Ranking tuple from the matcher; lower is better.
    """

    path: Path
    relative_path: str
    score: tuple = ()


@dataclass
class ReportEntry:
    """One package's contribution to the assembled report.

    Attributes:
        package: The package this entry describes.
        license_text: Declared license, or UNKNOWN_LICENSE when absent.
        matched_file: The best license file, or None when none was found.
        content: Text of matched_file, None when absent or unreadable.
        error: Read failure for matched_file, if any.
        manual_files: Operator supplied files with their contents.
        show_version: Whether headers include the version, set when several
            versions of the same crate are in the report.
    """

    package: Package
    license_text: str
    matched_file: Optional[LicenseFile] = None
    content: Optional[str] = None
    error: Optional[FileReadError] = None
    manual_files: list[tuple[LicenseFile, str]] = field(default_factory=list)
    show_version: bool = False

    @property
    def is_missing(self) -> bool:
        """Return True when the operator has to supply a license file."""
        return self.matched_file is None and not self.manual_files

    @property
    def display_name(self) -> str:
        """Return the name used in section headers."""
        if self.show_version:
            return self.package.full_name
        return self.package.name
