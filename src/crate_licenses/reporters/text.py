"""Plain text reporter producing the bundled third-party license file.

The document starts with a summary of every package, followed by one
banner-delimited section per license file::

    ================================================================================
    serde LICENSE-MIT
    ================================================================================

    <file content>

Packages without a license file get a section headed by their declared
license and a placeholder body, in the same format an operator uses when
appending license text by hand.
"""

from dataclasses import dataclass
from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, Template

from crate_licenses.models import ReportEntry
from crate_licenses.reporters.base import BaseReporter

BANNER = "=" * 80
MISSING_FILE_MARKER = "No license file found. Manual action required."
READ_ERROR_MARKER = "Could not read license file:"


@dataclass(frozen=True)
class Section:
    """A banner-delimited section of the report."""

    header: str
    body: str


def _terminated(text: str) -> str:
    # Keep spacing between sections consistent for files without a final newline.
    if text and not text.endswith("\n"):
        return text + "\n"
    return text


def entry_sections(entry: ReportEntry) -> list[Section]:
    """Return the sections a single report entry contributes, in order."""
    sections = []
    if entry.matched_file is not None:
        header = f"{entry.display_name} {entry.matched_file.relative_path}"
        if entry.error is not None:
            body = f"{READ_ERROR_MARKER} {entry.error.reason}\n"
        else:
            body = _terminated(entry.content or "")
        sections.append(Section(header=header, body=body))
    elif not entry.manual_files:
        sections.append(
            Section(
                header=f"{entry.display_name} {entry.license_text}",
                body=MISSING_FILE_MARKER + "\n",
            )
        )

    for license_file, content in entry.manual_files:
        sections.append(
            Section(
                header=f"{entry.display_name} {license_file.relative_path}",
                body=_terminated(content),
            )
        )
    return sections


class TextReporter(BaseReporter):
    """Reporter that renders the concatenated license text document.

    Output is a pure function of the entries: no timestamps or host
    details are included, so identical inputs give byte-identical reports.

    Attributes:
        template: The Jinja2 template to use for rendering.
    """

    def __init__(self, template_path: Optional[Path] = None) -> None:
        """Initialize the text reporter.

        Args:
            template_path: Optional path to a custom Jinja2 template.
                If not provided, uses the default bundled template.
        """
        if template_path:
            env = self._environment(FileSystemLoader(template_path.parent))
            self.template = env.get_template(template_path.name)
        else:
            self.template = self._load_default_template()

    @staticmethod
    def _environment(loader: Optional[FileSystemLoader] = None) -> Environment:
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def _load_default_template(self) -> Template:
        template_content = (
            files("crate_licenses.templates")
            .joinpath("report.txt.j2")
            .read_text(encoding="utf-8")
        )
        return self._environment().from_string(template_content)

    def render(self, entries: list[ReportEntry]) -> str:
        sections = [section for entry in entries for section in entry_sections(entry)]
        return self.template.render(
            banner=BANNER,
            entries=entries,
            sections=sections,
        )
