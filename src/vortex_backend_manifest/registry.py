"""Source registry for factory-based source creation.

This module provides a central registry for source factories,
enabling platform-agnostic flow wiring and automatic platform
discovery.
"""

import importlib
import sys
from pathlib import Path
from typing import Any, Callable


class SourceRegistry:
    """Central registry for source factories.

    This class manages factory functions that create source instances
    (marketplace lookups, bundled descriptors, review requests).
    Platforms register themselves when imported, and the registry
    can automatically discover all available platforms.
    """

    _factories: dict[str, Callable[..., Any]] = {}

    @classmethod
    def register_factory(cls, name: str, factory: Callable[..., Any]) -> None:
        """Register a factory function for creating sources.

        Args:
            name: Name of the source (e.g., 'nexus', 'bundled')
            factory: Callable that creates a source instance

        Example:
            >>> def create_bundled(root: Path) -> BundledGamesSource:
            ...     return BundledGamesSource(root)
            >>> SourceRegistry.register_factory('bundled', create_bundled)
        """
        cls._factories[name] = factory

    @classmethod
    def create_source(cls, source_name: str, **kwargs) -> Any:
        """Create a source from a registered factory.

        Args:
            source_name: Name of the registered source
            **kwargs: Arguments passed to the source factory

        Returns:
            The source instance

        Raises:
            ValueError: If source_name is not registered

        Example:
            >>> source = SourceRegistry.create_source('nexus', api_key='...')
        """
        if source_name not in cls._factories:
            available = ', '.join(cls._factories.keys()) or 'none'
            raise ValueError(
                f"Unknown source: '{source_name}'. Available sources: {available}"
            )

        return cls._factories[source_name](**kwargs)

    @classmethod
    def list_sources(cls) -> list[str]:
        """List all registered source names.

        Returns:
            List of registered source names

        Example:
            >>> SourceRegistry.list_sources()
            ['bundled', 'github', 'nexus']
        """
        return list(cls._factories.keys())

    @classmethod
    def discover_platforms(cls) -> None:
        """Auto-discover and import all platforms.

        Iterates through the platforms/ directory and imports each
        platform package, which registers itself from its __init__.py.
        A platform that fails to import is reported and skipped.
        """
        platforms_dir = Path(__file__).parent / 'platforms'

        if not platforms_dir.exists():
            return

        for platform_path in sorted(platforms_dir.iterdir()):
            if not platform_path.is_dir():
                continue

            if not (platform_path / '__init__.py').exists():
                continue

            platform_name = platform_path.name

            try:
                importlib.import_module(
                    f'.platforms.{platform_name}',
                    package=__package__,
                )
            except ImportError as e:
                print(f"Warning: Platform '{platform_name}' unavailable: {e}", file=sys.stderr)
