"""Vortex Backend - extensions manifest automation.

This package maintains the JSON manifests consumed by the desktop
application: it reconciles the extensions catalog with the Nexus Mods
marketplace, merges the bundled game extensions, adds reviewed
extensions and keeps the mod spotlight and mods of the month lists.
"""

__version__ = "0.1.0"

# Core library interface
from .pipeline import AddExtensionPipeline, RefreshPipeline, ReviewBatchPipeline, sanitize_manifest
from .reconciler import Outcome, OutcomeKind, ReconciliationEngine, merge_bundled
from .registry import SourceRegistry
from .sources.base import DescriptorSource, EntrySource, ReviewRequestSource
from .store import ManifestStore

# Core utilities
from .core import CatalogEntry, ExtensionType, Manifest
from .core import normalize_entry, validate_entry, validate_manifest, validate_manifest_with_error_details
from .errors import (
    EntryLookupError,
    EntryNotFoundError,
    ManifestError,
    ManifestStoreError,
    PreconditionError,
    RateLimitedError,
    RejectedError,
    ReviewRequestError,
    TransientLookupError,
)

# CLI
from .cli import main

# Auto-discover and register all platforms
SourceRegistry.discover_platforms()

__all__ = [
    # Primary library interface
    "AddExtensionPipeline",
    "DescriptorSource",
    "EntrySource",
    "ManifestStore",
    "Outcome",
    "OutcomeKind",
    "ReconciliationEngine",
    "RefreshPipeline",
    "ReviewBatchPipeline",
    "ReviewRequestSource",
    "SourceRegistry",
    "merge_bundled",
    "sanitize_manifest",
    # Core utilities
    "CatalogEntry",
    "ExtensionType",
    "Manifest",
    "normalize_entry",
    "validate_entry",
    "validate_manifest",
    "validate_manifest_with_error_details",
    # Errors
    "EntryLookupError",
    "EntryNotFoundError",
    "ManifestError",
    "ManifestStoreError",
    "PreconditionError",
    "RateLimitedError",
    "RejectedError",
    "ReviewRequestError",
    "TransientLookupError",
    # CLI
    "main",
]
