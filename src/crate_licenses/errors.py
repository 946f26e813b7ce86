"""Exception types for crate_licenses.

Only ResolutionError is fatal to a run. FileReadError is recorded on the
affected report entry and never stops processing of other packages.
"""

from pathlib import Path
from typing import Optional


class CrateLicensesError(Exception):
    """Base class for all crate_licenses errors."""


class ResolutionError(CrateLicensesError):
    """The build configuration could not be resolved against the dependency graph.

    Attributes:
        identifier: The offending feature name or target triple, when known.
    """

    def __init__(self, message: str, identifier: Optional[str] = None) -> None:
        super().__init__(message)
        self.identifier = identifier


class FileReadError(CrateLicensesError):
    """A matched license file exists but could not be read.

    Attributes:
        path: Path of the file that failed to read.
        reason: Short description of the underlying OS error.
    """

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason
