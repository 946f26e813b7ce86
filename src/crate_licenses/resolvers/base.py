"""Base interface for manifest resolvers.

Resolvers turn a build configuration into the list of packages that make up
the resolved dependency graph. They own all feature and platform semantics;
the rest of the pipeline only filters their output.
"""

from abc import ABC, abstractmethod

from crate_licenses.models import BuildConfig, Package


class BaseResolver(ABC):
    """Abstract base class for manifest resolvers."""

    @abstractmethod
    def resolve(self, config: BuildConfig) -> list[Package]:
        """Resolve the dependency graph for a build configuration.

        Args:
            config: Feature and target selection to resolve.

        Returns:
            Packages in the resolved graph, workspace members included and
            flagged. Order and uniqueness are not guaranteed.

        Raises:
            ResolutionError: If the configuration cannot be resolved.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the resolver name for logging/debugging.

        Returns:
            Name like "cargo metadata" or "metadata file".
        """
        ...
