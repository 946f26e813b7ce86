"""Command-line interface for crate_licenses.

Provides the entry point for generating the third-party license report of
a Rust binary and for checking that every dependency ships a license file.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from crate_licenses.errors import ResolutionError
from crate_licenses.matcher import LicenseFileMatcher, collect_entries
from crate_licenses.models import BuildConfig, FeatureSelection, ReportEntry
from crate_licenses.reporters import TextReporter
from crate_licenses.resolvers import BaseResolver, CargoMetadataResolver, MetadataFileResolver
from crate_licenses.selection import select_packages

app = typer.Typer(
    name="crate-licenses",
    help="Generate a third-party license report for a Rust binary's dependencies.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("crate_licenses")


FeaturesOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--features",
        metavar="FEATURES",
        help="Space or comma separated list of features to activate",
    ),
]
AllFeaturesOption = Annotated[
    bool, typer.Option("--all-features", help="Activate all available features")
]
NoDefaultFeaturesOption = Annotated[
    bool,
    typer.Option("--no-default-features", help="Do not activate the `default` feature"),
]
TargetOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--target",
        metavar="TRIPLE",
        help="Filter dependencies matching the given target-triple",
    ),
]
ManifestPathOption = Annotated[
    Optional[Path],
    typer.Option("--manifest-path", help="Path to Cargo.toml", dir_okay=False),
]
MetadataFileOption = Annotated[
    Optional[Path],
    typer.Option(
        "--metadata-file",
        help="Read a saved `cargo metadata --format-version 1` document instead of running cargo",
    ),
]
IncludeDevOption = Annotated[
    bool,
    typer.Option("--include-dev", help="Include dev-dependencies of workspace members"),
]
SearchDepthOption = Annotated[
    int,
    typer.Option(
        "--search-depth",
        min=0,
        max=1,
        help="Directory levels below each crate root to search for license files",
    ),
]
SourceOption = Annotated[
    Optional[Path],
    typer.Option(
        "--source",
        envvar="CRATE_LICENSES_SOURCE",
        file_okay=False,
        help="Directory of manually provided license files, one <name>-<version> folder per crate",
    ),
]
CargoOption = Annotated[
    Optional[str],
    typer.Option("--cargo", envvar="CARGO", help="Cargo executable to run"),
]
JobsOption = Annotated[
    int, typer.Option("--jobs", "-j", min=1, help="Packages to match concurrently")
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose output")
]


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("crate_licenses").setLevel(level)


def _build_config(
    features: Optional[list[str]],
    all_features: bool,
    no_default_features: bool,
    targets: Optional[list[str]],
    manifest_path: Optional[Path],
    include_dev: bool,
) -> BuildConfig:
    # --all-features already includes the default feature, so it wins.
    if all_features:
        mode = FeatureSelection.ALL
    elif no_default_features:
        mode = FeatureSelection.NONE
    else:
        mode = FeatureSelection.DEFAULT

    return BuildConfig(
        feature_mode=mode,
        features=tuple(features or ()),
        targets=tuple(targets or ()),
        manifest_path=manifest_path,
        include_dev=include_dev,
    )


def _get_resolver(metadata_file: Optional[Path], cargo: Optional[str]) -> BaseResolver:
    if metadata_file is not None:
        return MetadataFileResolver(metadata_file)
    return CargoMetadataResolver(cargo=cargo)


def _resolve_entries(
    config: BuildConfig,
    resolver: BaseResolver,
    search_depth: int,
    source: Optional[Path],
    jobs: int,
) -> list[ReportEntry]:
    """Resolve, select and match packages.

    Raises:
        typer.Exit: With code 1 if the configuration cannot be resolved.
    """
    logger.debug("Using resolver: %s", resolver.name)
    try:
        packages = select_packages(resolver.resolve(config))
    except ResolutionError as e:
        if e.identifier:
            err_console.print(f"[red]Error:[/red] {e} ({e.identifier})")
        else:
            err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if not packages:
        err_console.print("[yellow]Warning:[/yellow] No dependencies found")

    matcher = LicenseFileMatcher(search_depth=search_depth)
    return asyncio.run(collect_entries(packages, matcher, manual_dir=source, jobs=jobs))


def _warn_entries(entries: list[ReportEntry], show_url: bool) -> int:
    """Print warnings for missing license fields and files.

    Returns:
        Number of packages without any license file.
    """
    for entry in entries:
        if entry.package.license is None:
            err_console.print(
                f"[yellow]Warning:[/yellow] No license field: {entry.package.full_name}",
                highlight=False,
            )

    missing = 0
    for entry in entries:
        if entry.is_missing:
            suffix = ""
            if show_url and entry.package.url:
                suffix = f" ({entry.package.url})"
            err_console.print(
                f"[yellow]Warning:[/yellow] No license files found: "
                f"{entry.package.full_name}{suffix}",
                highlight=False,
            )
            missing += 1
    return missing


@app.command()
def gen(
    features: FeaturesOption = None,
    all_features: AllFeaturesOption = False,
    no_default_features: NoDefaultFeaturesOption = False,
    target: TargetOption = None,
    manifest_path: ManifestPathOption = None,
    metadata_file: MetadataFileOption = None,
    include_dev: IncludeDevOption = False,
    search_depth: SearchDepthOption = 0,
    source: SourceOption = None,
    template: Annotated[
        Optional[Path],
        typer.Option(
            "--template",
            "-t",
            help="Custom Jinja2 template file",
            exists=True,
            readable=True,
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the report here instead of stdout"),
    ] = None,
    require_files: Annotated[
        bool,
        typer.Option("--require-files", help="Require all dependencies to have license files"),
    ] = False,
    show_url: Annotated[
        bool,
        typer.Option("--show-url", help="Show the package url in missing file warnings"),
    ] = False,
    cargo: CargoOption = None,
    jobs: JobsOption = 8,
    verbose: VerboseOption = False,
) -> None:
    """Generate the third-party license report.

    Resolves the dependency graph for the given feature and target
    selection, finds each dependency's license file and writes the
    concatenated report.
    """
    _setup_logging(verbose)

    config = _build_config(
        features, all_features, no_default_features, target, manifest_path, include_dev
    )
    entries = _resolve_entries(
        config, _get_resolver(metadata_file, cargo), search_depth, source, jobs
    )

    missing = _warn_entries(entries, show_url)
    if require_files and missing:
        err_console.print("[red]Error:[/red] Exiting due to missing license files")
        raise typer.Exit(code=1)

    reporter = TextReporter(template_path=template)

    # License text is passed through as raw bytes, never as terminal text.
    if output is None:
        sys.stdout.flush()
        sys.stdout.buffer.write(reporter.render_bytes(entries))
        sys.stdout.buffer.flush()
        return

    try:
        reporter.write(entries, output)
    except OSError as e:
        err_console.print(f"[red]Error writing output:[/red] {e}")
        raise typer.Exit(code=1)
    err_console.print(f"[green]Generated:[/green] {output}")


@app.command()
def check(
    features: FeaturesOption = None,
    all_features: AllFeaturesOption = False,
    no_default_features: NoDefaultFeaturesOption = False,
    target: TargetOption = None,
    manifest_path: ManifestPathOption = None,
    metadata_file: MetadataFileOption = None,
    include_dev: IncludeDevOption = False,
    search_depth: SearchDepthOption = 0,
    source: SourceOption = None,
    cargo: CargoOption = None,
    jobs: JobsOption = 8,
    verbose: VerboseOption = False,
) -> None:
    """Check that every dependency has a license file.

    Exit codes:
        0 - All dependencies have license files
        1 - Missing license files or resolution error
    """
    _setup_logging(verbose)

    config = _build_config(
        features, all_features, no_default_features, target, manifest_path, include_dev
    )
    entries = _resolve_entries(
        config, _get_resolver(metadata_file, cargo), search_depth, source, jobs
    )

    console.print(f"Checking [bold]{len(entries)}[/bold] packages...")

    no_field = [e.package.full_name for e in entries if e.package.license is None]
    missing = [e.package.full_name for e in entries if e.is_missing]

    if no_field:
        console.print(f"\n[yellow]No license field ({len(no_field)}):[/yellow]")
        for name in no_field:
            console.print(f"  - {name}", highlight=False)

    if missing:
        console.print(f"\n[red]Missing license files ({len(missing)}):[/red]")
        for name in missing:
            console.print(f"  - {name}", highlight=False)
        raise typer.Exit(code=1)

    console.print(f"\n[green]All {len(entries)} packages have license files![/green]")


if __name__ == "__main__":
    app()
