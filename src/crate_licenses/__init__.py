"""Crate Licenses - Third-party license reports for Rust binaries.

This package resolves the dependency graph of a cargo workspace, locates
each dependency's license file and assembles a single license document
for bundling with a shipped binary.
"""

__version__ = "0.1.0"

from crate_licenses.errors import CrateLicensesError, FileReadError, ResolutionError
from crate_licenses.models import (
    BuildConfig,
    FeatureSelection,
    LicenseFile,
    Package,
    ReportEntry,
)

__all__ = [
    "__version__",
    "BuildConfig",
    "CrateLicensesError",
    "FeatureSelection",
    "FileReadError",
    "LicenseFile",
    "Package",
    "ReportEntry",
    "ResolutionError",
]
