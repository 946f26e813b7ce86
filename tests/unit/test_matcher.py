"""Tests for the license file matcher."""

import asyncio
from pathlib import Path

import pytest

from crate_licenses.errors import FileReadError
from crate_licenses.matcher import (
    LicenseFileMatcher,
    build_entry,
    collect_entries,
    read_license_file,
    score_filename,
)
from crate_licenses.models import UNKNOWN_LICENSE, LicenseFile


@pytest.fixture
def matcher() -> LicenseFileMatcher:
    """Create a top-level only matcher."""
    return LicenseFileMatcher()


def _names(matcher: LicenseFileMatcher, source_dir: Path) -> list[str]:
    return [f.relative_path for f in matcher.candidates(source_dir)]


class TestScoreFilename:
    """Test suite for the filename heuristic."""

    @pytest.mark.parametrize(
        "filename",
        ["LICENSE", "LICENSE-MIT", "LICENSE.txt", "license.md", "COPYING", "NOTICE.md", "UNLICENSE"],
    )
    def test_candidates(self, filename: str) -> None:
        """Test that marker names with eligible extensions qualify."""
        assert score_filename(filename) is not None

    @pytest.mark.parametrize(
        "filename",
        ["LICENSE.rs", "license.toml", "README.md", "Cargo.toml", "LICENSE.APACHE2", "src"],
    )
    def test_rejected(self, filename: str) -> None:
        """Test that wrong extensions and non-marker names are rejected."""
        assert score_filename(filename) is None

    def test_case_insensitive(self) -> None:
        """Test that marker and extension matching ignore case."""
        scores = [score_filename(name) for name in ("license.TXT", "License.txt", "LICENSE.txt")]
        assert all(score is not None for score in scores)
        # Same rank up to the final lexicographic tie-break
        assert len({score[:4] for score in scores}) == 1

    def test_marker_precedence(self) -> None:
        """Test LICENSE < LICENCE < NOTICE < COPYING."""
        names = ["COPYING", "NOTICE", "LICENCE", "LICENSE"]
        assert sorted(names, key=score_filename) == ["LICENSE", "LICENCE", "NOTICE", "COPYING"]

    def test_extension_precedence(self) -> None:
        """Test no extension < .txt < .md for the same marker."""
        names = ["LICENSE.md", "LICENSE.txt", "LICENSE"]
        assert sorted(names, key=score_filename) == ["LICENSE", "LICENSE.txt", "LICENSE.md"]

    def test_marker_beats_extension(self) -> None:
        """Test that the marker rank is compared before the extension rank."""
        assert score_filename("LICENSE.md") < score_filename("COPYING")

    def test_shorter_then_lexicographic(self) -> None:
        """Test the length and lexicographic tie-breaks."""
        assert score_filename("LICENSE-MIT") < score_filename("LICENSE-APACHE")
        assert score_filename("LICENSE-A") < score_filename("LICENSE-B")


class TestLicenseFileMatcher:
    """Test suite for LicenseFileMatcher."""

    def test_scenario_plain_license_wins(self, matcher, make_crate) -> None:
        """LICENSE, LICENSE.md and Cargo.toml: LICENSE is chosen."""
        crate = make_crate("a", "1.0.0", {"LICENSE": "x", "LICENSE.md": "y"})
        assert matcher.find(crate).relative_path == "LICENSE"

    def test_plain_license_beats_suffixed(self, matcher, make_crate) -> None:
        """LICENSE wins over LICENSE.md and LICENSE-MIT.txt."""
        crate = make_crate(
            "a", "1.0.0", {"LICENSE-MIT.txt": "x", "LICENSE.md": "y", "LICENSE": "z"}
        )
        assert matcher.find(crate).relative_path == "LICENSE"

    def test_scenario_copying_only(self, matcher, make_crate) -> None:
        """COPYING.txt alone is matched."""
        crate = make_crate("b", "1.0.0", {"COPYING.txt": "gpl"})
        assert matcher.find(crate).relative_path == "COPYING.txt"

    def test_scenario_notice_lowercase(self, matcher, make_crate) -> None:
        """notice.md matches, README.md never does."""
        crate = make_crate("c", "1.0.0", {"notice.md": "n", "README.md": "r"})
        assert _names(matcher, crate) == ["notice.md"]

    def test_scenario_nothing_found(self, matcher, make_crate) -> None:
        """A crate without marker files yields None."""
        crate = make_crate("d", "1.0.0", {"README.md": "r", "src/lib.rs": ""})
        assert matcher.find(crate) is None

    def test_disqualified_extension_ignored(self, matcher, make_crate) -> None:
        """LICENSE.rs is skipped but other candidates still match."""
        crate = make_crate("e", "1.0.0", {"LICENSE.rs": "", "COPYING": "c"})
        assert _names(matcher, crate) == ["COPYING"]

    def test_disqualified_extension_only(self, matcher, make_crate) -> None:
        """A crate with only LICENSE.rs yields None."""
        crate = make_crate("e", "1.0.0", {"LICENSE.rs": ""})
        assert matcher.find(crate) is None

    def test_directories_are_not_candidates(self, matcher, make_crate) -> None:
        """A directory named like a license file is ignored."""
        crate = make_crate("f", "1.0.0", {"licenses/MIT.txt": "m"})
        assert matcher.find(crate) is None

    def test_top_level_only_by_default(self, matcher, make_crate) -> None:
        """Nested license files are not searched at depth 0."""
        crate = make_crate("g", "1.0.0", {"legal/LICENSE": "x"})
        assert matcher.find(crate) is None

    def test_nested_search(self, make_crate) -> None:
        """At depth 1 nested files are found but top-level files still win."""
        crate = make_crate("g", "1.0.0", {"legal/LICENSE": "x", "COPYING.md": "y"})
        nested = LicenseFileMatcher(search_depth=1)
        assert _names(nested, crate) == ["COPYING.md", "legal/LICENSE"]

    def test_invalid_search_depth(self) -> None:
        """Test that unsupported depths are rejected."""
        with pytest.raises(ValueError, match="search_depth"):
            LicenseFileMatcher(search_depth=2)

    def test_missing_source_dir(self, matcher, tmp_path) -> None:
        """A source directory that does not exist yields None."""
        assert matcher.find(tmp_path / "absent") is None

    def test_declared_license_file_fallback(self, matcher, make_package) -> None:
        """The manifest's license-file is used when the heuristic finds nothing."""
        package = make_package("ring", files={"LEGAL.rst": "terms"}, license_file="LEGAL.rst")
        assert matcher.match(package).relative_path == "LEGAL.rst"

    def test_heuristic_wins_over_declared(self, matcher, make_package) -> None:
        """A heuristic match is preferred over the declared license-file."""
        package = make_package(
            "ring", files={"LEGAL.rst": "terms", "LICENSE": "isc"}, license_file="LEGAL.rst"
        )
        assert matcher.match(package).relative_path == "LICENSE"


class TestReadAndBuild:
    """Test suite for reading license files and building entries."""

    def test_read_license_file_verbatim(self, tmp_path) -> None:
        """Test that content is returned unchanged."""
        path = tmp_path / "LICENSE"
        path.write_bytes(b"Copyright (c) 2024\n\nPermission...")
        text = read_license_file(LicenseFile(path=path, relative_path="LICENSE"))
        assert text == "Copyright (c) 2024\n\nPermission..."

    def test_read_license_file_keeps_non_utf8_bytes(self, tmp_path) -> None:
        """Test that Latin-1 and control bytes survive a decode/encode round."""
        raw = b"Copyright \xa9 1999 J\xfcrgen\n\x1b[1mbold\x1b[0m\n"
        path = tmp_path / "LICENSE"
        path.write_bytes(raw)
        text = read_license_file(LicenseFile(path=path, relative_path="LICENSE"))
        assert text.encode("utf-8", errors="surrogateescape") == raw

    def test_read_failure_raises_file_read_error(self, tmp_path) -> None:
        """Test that OS errors become FileReadError."""
        missing = LicenseFile(path=tmp_path / "LICENSE", relative_path="LICENSE")
        with pytest.raises(FileReadError) as exc_info:
            read_license_file(missing)
        assert exc_info.value.path == tmp_path / "LICENSE"

    def test_build_entry_with_match(self, matcher, make_package) -> None:
        package = make_package("serde", files={"LICENSE-MIT": "mit text"})
        entry = build_entry(package, matcher)
        assert entry.matched_file.relative_path == "LICENSE-MIT"
        assert entry.content == "mit text"
        assert entry.error is None
        assert entry.license_text == "MIT"

    def test_build_entry_unknown_license(self, matcher, make_package) -> None:
        package = make_package("nolicense", license=None)
        entry = build_entry(package, matcher)
        assert entry.license_text == UNKNOWN_LICENSE
        assert entry.matched_file is None
        assert entry.is_missing

    def test_build_entry_read_error_is_local(self, matcher, make_package, mocker) -> None:
        """A read failure is recorded on the entry instead of raised."""
        package = make_package("serde", files={"LICENSE": "x"})
        mocker.patch(
            "crate_licenses.matcher.read_license_file",
            side_effect=FileReadError(package.source_dir / "LICENSE", "Permission denied"),
        )
        entry = build_entry(package, matcher)
        assert entry.matched_file is not None
        assert entry.content is None
        assert entry.error.reason == "Permission denied"

    def test_build_entry_manual_files(self, matcher, make_package, tmp_path) -> None:
        """Files under <source>/<name>-<version>/ are attached in path order."""
        package = make_package("ring", version="0.17.8")
        manual_dir = tmp_path / "manual"
        (manual_dir / "ring-0.17.8" / "third_party").mkdir(parents=True)
        (manual_dir / "ring-0.17.8" / "LICENSE").write_text("isc", encoding="utf-8")
        (manual_dir / "ring-0.17.8" / "third_party" / "fiat").write_text("mit", encoding="utf-8")

        entry = build_entry(package, matcher, manual_dir=manual_dir)

        assert [f.relative_path for f, _ in entry.manual_files] == ["LICENSE", "third_party/fiat"]
        assert [content for _, content in entry.manual_files] == ["isc", "mit"]
        assert not entry.is_missing


class TestCollectEntries:
    """Test suite for concurrent entry collection."""

    @pytest.mark.asyncio
    async def test_preserves_input_order(self, matcher, make_package) -> None:
        packages = [
            make_package(name, files={"LICENSE": name}) for name in ("a", "b", "c", "d")
        ]
        entries = await collect_entries(packages, matcher, jobs=2)
        assert [e.package.name for e in entries] == ["a", "b", "c", "d"]
        assert [e.content for e in entries] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_marks_multi_version_crates(self, matcher, make_package) -> None:
        packages = [
            make_package("foo", "1.0.0"),
            make_package("foo", "2.0.0"),
            make_package("bar", "1.0.0"),
        ]
        entries = await collect_entries(packages, matcher)
        assert [e.show_version for e in entries] == [True, True, False]

    def test_can_run_from_sync_code(self, matcher, make_package) -> None:
        entries = asyncio.run(collect_entries([make_package("a")], matcher))
        assert len(entries) == 1
