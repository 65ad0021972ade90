"""Platform implementations for the manifest flows.

This package contains self-contained platform modules that provide
source and transformer implementations for the marketplace (nexus),
the bundled game extensions (bundled) and review requests (github).

Each platform module auto-registers itself with the SourceRegistry
when imported.
"""

# Platform modules are imported by SourceRegistry.discover_platforms()
