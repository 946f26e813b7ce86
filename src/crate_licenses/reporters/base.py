"""Base interface for report assemblers.

Reporters turn ordered report entries into a single text document. They
never reorder entries and never write anywhere except when asked through
:meth:`BaseReporter.write`.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from crate_licenses.models import ReportEntry


class BaseReporter(ABC):
    """Abstract base class for report assemblers."""

    @abstractmethod
    def render(self, entries: list[ReportEntry]) -> str:
        """Render report entries to a document.

        Args:
            entries: Report entries in final output order.

        Returns:
            Rendered output as a string.
        """
        ...

    def render_bytes(self, entries: list[ReportEntry]) -> bytes:
        """Render report entries and encode them for output.

        License file bytes that are not valid UTF-8 are carried as surrogate
        escapes and come back out unchanged.

        Args:
            entries: Report entries in final output order.

        Returns:
            Encoded document.
        """
        return self.render(entries).encode("utf-8", errors="surrogateescape")

    def write(self, entries: list[ReportEntry], output_path: Path) -> None:
        """Render and write output to a file.

        Args:
            entries: Report entries in final output order.
            output_path: Path to write the output file.
        """
        output_path.write_bytes(self.render_bytes(entries))
