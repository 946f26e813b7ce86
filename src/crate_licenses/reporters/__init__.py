"""Report assemblers for the bundled third-party license document."""

from crate_licenses.reporters.base import BaseReporter
from crate_licenses.reporters.text import TextReporter

__all__ = ["BaseReporter", "TextReporter"]
