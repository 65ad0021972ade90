"""Bundled game extensions platform.

Provides the statically declared game extensions that ship with the
host application and registers itself with SourceRegistry as 'bundled'.
"""

from pathlib import Path

from .source import BundledGamesSource
from .transformer import BundledGameTransformer, game_name_from_title

# Auto-register with the registry
from ...registry import SourceRegistry


def _create_bundled_source(root: Path, **kwargs) -> BundledGamesSource:
    """Factory function for creating bundled game sources.

    Args:
        root: Checkout of the bundled game extensions
        **kwargs: 'exclusions' overrides the default exclusion list

    Returns:
        BundledGamesSource instance
    """
    return BundledGamesSource(root, exclusions=kwargs.get('exclusions'))


SourceRegistry.register_factory('bundled', _create_bundled_source)

__all__ = [
    "BundledGameTransformer",
    "BundledGamesSource",
    "game_name_from_title",
]
