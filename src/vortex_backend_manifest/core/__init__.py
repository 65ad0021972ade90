"""Core utilities for manifest maintenance.

This package contains schema validation, type definitions, entry
normalization and version requirement parsing that are used by every
flow and platform implementation.
"""

from .dependencies import dependencies_from_description, is_compatible, parse_version_requirement
from .normalizer import (
    ValidationResult,
    get_entry_type,
    is_stub,
    normalize_entry,
    set_entry_type,
    stub_entry,
    validate_entry,
)
from .types import CatalogEntry, Description, ExtensionType, ExtraInfo, Manifest
from .validator import validate_manifest, validate_manifest_with_error_details
from .versioning import satisfies

__all__ = [
    "CatalogEntry",
    "Description",
    "ExtensionType",
    "ExtraInfo",
    "Manifest",
    "ValidationResult",
    "dependencies_from_description",
    "get_entry_type",
    "is_compatible",
    "is_stub",
    "normalize_entry",
    "parse_version_requirement",
    "satisfies",
    "set_entry_type",
    "stub_entry",
    "validate_entry",
    "validate_manifest",
    "validate_manifest_with_error_details",
]
