"""JSON Schema validation for the extensions manifest.

This module loads the formal JSON Schema and validates manifests when they
are read and before they are written. Identity uniqueness cannot be
expressed in the schema and is checked separately.
"""

import json
from collections import Counter
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import ValidationError

from .types import Manifest

# Path to the schema file shipped inside the package
# src/vortex_backend_manifest/core/validator.py -> src/vortex_backend_manifest/schemas/
SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "extensions-manifest.schema.json"


def load_schema() -> dict[str, Any]:
    """Load the JSON schema from disk.

    Returns:
        Dictionary containing the JSON Schema.

    Raises:
        FileNotFoundError: If schema file doesn't exist
        json.JSONDecodeError: If schema is invalid JSON
    """
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)  # type: ignore[no-any-return]


def find_duplicate_identities(manifest: Manifest) -> list[str]:
    """List identity collisions in a manifest.

    modId must be unique among marketplace entries and id among bundled
    entries (those without a modId).

    Args:
        manifest: Manifest to inspect

    Returns:
        One message per duplicated identity, empty if none
    """
    mod_ids = Counter(
        ext["modId"] for ext in manifest["extensions"] if ext.get("modId") is not None
    )
    bundled_ids = Counter(
        ext["id"]
        for ext in manifest["extensions"]
        if ext.get("modId") is None and ext.get("id") is not None
    )

    problems = [f"duplicate modId {mod_id} ({count} entries)" for mod_id, count in mod_ids.items() if count > 1]
    problems += [f"duplicate id '{slug}' ({count} entries)" for slug, count in bundled_ids.items() if count > 1]
    return problems


def validate_manifest(manifest: Manifest) -> None:
    """Validate a manifest against the JSON Schema.

    Args:
        manifest: The manifest dictionary to validate

    Raises:
        ValidationError: If the manifest doesn't conform to the schema or
            contains duplicate identities
        FileNotFoundError: If schema file is missing
        json.JSONDecodeError: If schema is invalid
    """
    schema = load_schema()
    jsonschema.validate(instance=manifest, schema=schema)

    duplicates = find_duplicate_identities(manifest)
    if duplicates:
        raise ValidationError("; ".join(duplicates))


def validate_manifest_with_error_details(manifest: Manifest) -> tuple[bool, str | None]:
    """Validate a manifest and return detailed error information.

    This is a convenience wrapper that catches validation errors and
    returns user-friendly error messages.

    Args:
        manifest: The manifest dictionary to validate

    Returns:
        Tuple of (is_valid, error_message). error_message is None if valid.
    """
    try:
        validate_manifest(manifest)
        return True, None
    except ValidationError as e:
        # Build a detailed error message
        error_path = " -> ".join(str(p) for p in e.path) if e.path else "root"
        error_msg = f"Validation error at {error_path}: {e.message}"

        # Add context if available (skip whole documents, they are huge)
        if e.instance and e.path:
            error_msg += f"\nInvalid value: {e.instance}"

        return False, error_msg
    except (FileNotFoundError, json.JSONDecodeError) as e:
        return False, f"Schema error: {e}"
