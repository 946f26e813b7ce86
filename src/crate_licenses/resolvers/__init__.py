"""Manifest resolvers producing the resolved dependency graph.

This module provides resolvers that read the resolved package set either
from a live ``cargo metadata`` run or from a captured metadata document.
"""

from crate_licenses.resolvers.base import BaseResolver
from crate_licenses.resolvers.cargo import CargoMetadataResolver
from crate_licenses.resolvers.metadata import MetadataFileResolver, parse_metadata

__all__ = [
    "BaseResolver",
    "CargoMetadataResolver",
    "MetadataFileResolver",
    "parse_metadata",
]
