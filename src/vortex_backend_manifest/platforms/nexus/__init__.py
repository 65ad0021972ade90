"""Nexus Mods platform integration.

This module provides marketplace lookups for the manifest flows and
registers itself with SourceRegistry as 'nexus'.

Usage:
    >>> from vortex_backend_manifest import SourceRegistry
    >>> source = SourceRegistry.create_source('nexus', api_key='...')
    >>> info = source.get_item_info(598)
"""

from .source import NexusSource, parse_item_file, parse_item_info
from .transformer import NexusEntryTransformer, extra_info_for_game

# Auto-register with the registry
from ...registry import SourceRegistry


def _create_nexus_source(api_key: str, **kwargs) -> NexusSource:
    """Factory function for creating NexusSource.

    Args:
        api_key: Marketplace API key
        **kwargs: Passed through to NexusSource (base_url, http, timeout)

    Returns:
        Configured NexusSource instance
    """
    return NexusSource(api_key, **kwargs)


SourceRegistry.register_factory('nexus', _create_nexus_source)

__all__ = [
    "NexusEntryTransformer",
    "NexusSource",
    "extra_info_for_game",
    "parse_item_file",
    "parse_item_info",
]
