"""Resolver that asks cargo for the resolved dependency graph.

Runs ``cargo metadata --format-version 1`` with the requested feature and
platform options and hands the JSON document to :func:`parse_metadata`.
"""

import json
import logging
import os
import re
import subprocess
from pathlib import Path
from typing import Optional

from crate_licenses.errors import ResolutionError
from crate_licenses.models import BuildConfig, FeatureSelection, Package
from crate_licenses.resolvers.base import BaseResolver
from crate_licenses.resolvers.metadata import parse_metadata

logger = logging.getLogger(__name__)


class CargoMetadataResolver(BaseResolver):
    """Resolver backed by the ``cargo metadata`` subcommand.

    Attributes:
        cargo: Cargo executable. Defaults to $CARGO, which cargo sets for
            its subcommands, then to "cargo" on PATH.
        cwd: Working directory for the cargo invocation.
    """

    TARGET_SPEC_ERROR = "Error loading target specification: "

    # Patterns naming an unknown feature across cargo releases
    FEATURE_ERROR_PATTERNS = [
        re.compile(r"does not have (?:the |these )?features? `([^`]+)`"),
        re.compile(r"does not contain (?:this feature|these features): (.+)$", re.M),
        re.compile(r"none of the selected packages contains these features: (.+)$", re.M),
    ]

    TARGET_NAME_PATTERN = re.compile(r'target "([^"]+)"')

    def __init__(self, cargo: Optional[str] = None, cwd: Optional[Path] = None) -> None:
        self.cargo = cargo or os.environ.get("CARGO", "cargo")
        self.cwd = cwd

    @property
    def name(self) -> str:
        return "cargo metadata"

    def build_command(self, config: BuildConfig) -> list[str]:
        """Translate a build configuration into a cargo command line."""
        cmd = [self.cargo, "metadata", "--format-version", "1"]
        for feature in config.features:
            cmd.extend(["--features", feature])
        if config.feature_mode is FeatureSelection.ALL:
            cmd.append("--all-features")
        elif config.feature_mode is FeatureSelection.NONE:
            cmd.append("--no-default-features")
        for target in config.targets:
            cmd.extend(["--filter-platform", target])
        if config.manifest_path is not None:
            cmd.extend(["--manifest-path", str(config.manifest_path)])
        return cmd

    def resolve(self, config: BuildConfig) -> list[Package]:
        cmd = self.build_command(config)
        logger.debug("Running %s", " ".join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, cwd=self.cwd, check=False)
        except FileNotFoundError as e:
            raise ResolutionError(
                f"cargo executable not found: {self.cargo}", identifier=self.cargo
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace")
            raise self._error_from_stderr(stderr, config)

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ResolutionError(f"Invalid JSON from cargo metadata: {e}") from e

        packages = parse_metadata(data, include_dev=config.include_dev)
        logger.debug("cargo metadata resolved %d packages", len(packages))
        return packages

    def _error_from_stderr(self, stderr: str, config: BuildConfig) -> ResolutionError:
        """Build a ResolutionError naming the offending feature or target."""
        for line in stderr.splitlines():
            if self.TARGET_SPEC_ERROR in line:
                detail = line.split(self.TARGET_SPEC_ERROR)[-1].strip()
                identifier = next((t for t in config.targets if t in detail), None)
                if identifier is None:
                    match = self.TARGET_NAME_PATTERN.search(detail)
                    identifier = match.group(1) if match else None
                return ResolutionError(detail, identifier=identifier)

        for pattern in self.FEATURE_ERROR_PATTERNS:
            match = pattern.search(stderr)
            if match:
                identifier = match.group(1).strip()
                return ResolutionError(
                    f"Unknown feature: {identifier}", identifier=identifier
                )

        return ResolutionError(f"cargo metadata failed\n{stderr.strip()}")
