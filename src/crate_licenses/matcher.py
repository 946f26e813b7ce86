"""License file matching for materialized crate sources.

A file is a license candidate when its stem contains one of the marker
substrings (case-insensitive) and its extension is empty, ``.txt`` or
``.md``. Among candidates the winner is the lowest score tuple::

    (depth, marker rank, extension rank, filename length, filename)

with markers ranked LICENSE < LICENCE < NOTICE < COPYING and extensions
ranked none < .txt < .md. Filenames compare by code point. Depth is the
number of directories below the source directory; the default search is
top-level only, so depth is always 0 unless ``search_depth`` is raised.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from crate_licenses.errors import FileReadError
from crate_licenses.models import UNKNOWN_LICENSE, LicenseFile, Package, ReportEntry
from crate_licenses.selection import versioned_names

logger = logging.getLogger(__name__)

MARKERS = ("license", "licence", "notice", "copying")
EXTENSIONS = ("", ".txt", ".md")


def marker_rank(stem: str) -> Optional[int]:
    """Return the rank of the best marker contained in a file stem."""
    lowered = stem.lower()
    for rank, marker in enumerate(MARKERS):
        if marker in lowered:
            return rank
    return None


def extension_rank(suffix: str) -> Optional[int]:
    """Return the rank of an eligible extension, None if it disqualifies."""
    try:
        return EXTENSIONS.index(suffix.lower())
    except ValueError:
        return None


def score_filename(filename: str, depth: int = 0) -> Optional[tuple]:
    """Score a bare filename as a license candidate.

    Args:
        filename: File name without directory components.
        depth: Directory depth below the package source directory.

    Returns:
        The score tuple, or None if the file is not a candidate.
    """
    path = Path(filename)
    marker = marker_rank(path.stem)
    if marker is None:
        return None
    ext = extension_rank(path.suffix)
    if ext is None:
        return None
    return (depth, marker, ext, len(filename), filename)


class LicenseFileMatcher:
    """Find the most plausible license file in a package source directory.

    Attributes:
        search_depth: 0 scans the top level only; 1 also scans direct
            subdirectories. Top-level candidates always beat nested ones.
    """

    def __init__(self, search_depth: int = 0) -> None:
        if search_depth not in (0, 1):
            raise ValueError(f"search_depth must be 0 or 1, got {search_depth}")
        self.search_depth = search_depth

    def _list_files(self, directory: Path, depth: int) -> list[tuple[Path, int]]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            logger.warning("Cannot list %s: %s", directory, e)
            return []

        files: list[tuple[Path, int]] = []
        for entry in entries:
            if entry.is_file():
                files.append((entry, depth))
            elif entry.is_dir() and depth < self.search_depth:
                files.extend(self._list_files(entry, depth + 1))
        return files

    def candidates(self, source_dir: Path) -> list[LicenseFile]:
        """Return every candidate in source_dir, best first."""
        found = []
        for path, depth in self._list_files(source_dir, 0):
            score = score_filename(path.name, depth)
            if score is None:
                continue
            relative_path = path.relative_to(source_dir).as_posix()
            found.append(
                LicenseFile(path=path, relative_path=relative_path, score=score + (relative_path,))
            )
        found.sort(key=lambda f: f.score)
        return found

    def find(self, source_dir: Path) -> Optional[LicenseFile]:
        """Return the best candidate in source_dir, or None if there is none."""
        found = self.candidates(source_dir)
        if not found:
            return None
        logger.debug(
            "Best license file in %s: %s (of %d)", source_dir, found[0].relative_path, len(found)
        )
        return found[0]

    def match(self, package: Package) -> Optional[LicenseFile]:
        """Match a package, falling back to its declared license file."""
        best = self.find(package.source_dir)
        if best is not None or not package.license_file:
            return best

        declared = package.source_dir / package.license_file
        if declared.is_file():
            logger.debug("Using declared license-file for %s", package.full_name)
            return LicenseFile(path=declared, relative_path=Path(package.license_file).as_posix())
        return None


def read_license_file(license_file: LicenseFile) -> str:
    """Read a license file verbatim.

    Bytes that are not valid UTF-8 are kept as surrogate escapes so that
    encoding the text with ``surrogateescape`` restores the original bytes.

    Raises:
        FileReadError: If the file cannot be read.
    """
    try:
        data = license_file.path.read_bytes()
    except OSError as e:
        raise FileReadError(license_file.path, e.strerror or str(e)) from e
    return data.decode("utf-8", errors="surrogateescape")


def manual_license_files(manual_dir: Path, package: Package) -> list[tuple[LicenseFile, str]]:
    """Read operator supplied files from ``manual_dir/<name>-<version>/``.

    Every file below that directory is included, ordered by relative path.
    Unreadable files are logged and skipped.
    """
    package_dir = manual_dir / f"{package.name}-{package.version}"
    if not package_dir.is_dir():
        return []

    files = []
    for path in sorted(p for p in package_dir.rglob("*") if p.is_file()):
        license_file = LicenseFile(path=path, relative_path=path.relative_to(package_dir).as_posix())
        try:
            files.append((license_file, read_license_file(license_file)))
        except FileReadError as e:
            logger.warning("Skipping manual license file: %s", e)
    return files


def build_entry(
    package: Package,
    matcher: LicenseFileMatcher,
    manual_dir: Optional[Path] = None,
    show_version: bool = False,
) -> ReportEntry:
    """Match and read the license files for a single package."""
    entry = ReportEntry(
        package=package,
        license_text=package.license or UNKNOWN_LICENSE,
        show_version=show_version,
    )

    entry.matched_file = matcher.match(package)
    if entry.matched_file is not None:
        try:
            entry.content = read_license_file(entry.matched_file)
        except FileReadError as e:
            logger.warning("%s: %s", package.full_name, e)
            entry.error = e

    if manual_dir is not None:
        entry.manual_files = manual_license_files(manual_dir, package)

    return entry


async def collect_entries(
    packages: list[Package],
    matcher: LicenseFileMatcher,
    manual_dir: Optional[Path] = None,
    jobs: int = 8,
) -> list[ReportEntry]:
    """Build report entries for all packages concurrently.

    Matching runs in worker threads bounded by ``jobs``. The returned list
    follows the order of ``packages``.

    Args:
        packages: Selected packages in report order.
        matcher: Matcher to use for every package.
        manual_dir: Optional directory of operator supplied license files.
        jobs: Maximum number of packages matched at once.

    Returns:
        One ReportEntry per package.
    """
    multi_version = versioned_names(packages)
    semaphore = asyncio.Semaphore(max(1, jobs))

    async def build(package: Package) -> ReportEntry:
        async with semaphore:
            return await asyncio.to_thread(
                build_entry, package, matcher, manual_dir, package.name in multi_version
            )

    entries = await asyncio.gather(*(build(p) for p in packages))
    logger.info(
        "Matched license files for %d/%d packages",
        sum(1 for e in entries if e.matched_file is not None),
        len(entries),
    )
    return list(entries)
