"""Shape checks and canonical field order for catalog entries.

Entries are validated before they are merged into the manifest and
normalized so that manifest diffs stay stable between runs.
"""

from dataclasses import dataclass, field
from typing import Any

from .types import STORED_TYPE_VALUES, CatalogEntry, ExtensionType

# Canonical key order of a marketplace entry
FIELD_ORDER = [
    "modId",
    "fileId",
    "author",
    "uploader",
    "description",
    "downloads",
    "endorsements",
    "image",
    "name",
    "timestamp",
    "tags",
    "version",
    "type",
    "gameName",
    "gameId",
    "language",
    "dependencies",
]

STUB_KEYS = ("modId", "fileId")


@dataclass
class ValidationResult:
    """Outcome of validate_entry()."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid count or id
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_entry(entry: CatalogEntry) -> ValidationResult:
    """Check that a marketplace entry is well-formed.

    Every check runs; all violations are reported, not just the first.

    Args:
        entry: Entry to check

    Returns:
        ValidationResult with the collected error messages
    """
    errors: list[str] = []

    if not _is_number(entry.get("modId")):
        errors.append("modId must be a number")

    if not _is_number(entry.get("fileId")):
        errors.append("fileId must be a number")

    if not isinstance(entry.get("author"), str):
        errors.append("author must be a string")

    if not isinstance(entry.get("uploader"), str):
        errors.append("uploader must be a string")

    description = entry.get("description")
    if not isinstance(description, dict):
        errors.append("description must be an object")
    else:
        if not isinstance(description.get("short"), str):
            errors.append("description.short must be a string")
        if not isinstance(description.get("long"), str):
            errors.append("description.long must be a string")

    if not _is_number(entry.get("downloads")):
        errors.append("downloads must be a number")

    if not _is_number(entry.get("endorsements")):
        errors.append("endorsements must be a number")

    if "image" in entry and not isinstance(entry["image"], str):
        errors.append("image must be a string or undefined")

    if not isinstance(entry.get("name"), str):
        errors.append("name must be a string")

    if not _is_number(entry.get("timestamp")):
        errors.append("timestamp must be a number")

    if not isinstance(entry.get("tags"), list):
        errors.append("tags must be an array")

    if not isinstance(entry.get("version"), str):
        errors.append("version must be a string")

    entry_type_value = entry.get("type")
    if entry_type_value is not None and entry_type_value not in STORED_TYPE_VALUES:
        errors.append("type must be one of game, theme, translation or absent")

    if "gameName" in entry and not isinstance(entry["gameName"], str):
        errors.append("gameName must be a string or undefined")

    if entry_type_value == ExtensionType.GAME.value and not entry.get("gameName"):
        errors.append("game extensions must have a gameName")

    return ValidationResult(valid=not errors, errors=errors)


def normalize_entry(entry: CatalogEntry) -> CatalogEntry:
    """Re-emit an entry with only known fields, in canonical order.

    Absent or None values are dropped, which also drops a tool's ``type``.

    Args:
        entry: Entry to normalize (not modified)

    Returns:
        New entry dict
    """
    normalized: dict[str, Any] = {}
    for key in FIELD_ORDER:
        value = entry.get(key)
        if value is not None:
            normalized[key] = value
    return normalized  # type: ignore[return-value]


def get_entry_type(entry: CatalogEntry) -> ExtensionType:
    """Read the ExtensionType of an entry (absent type means tool)."""
    return ExtensionType.from_json(entry.get("type"))


def set_entry_type(entry: CatalogEntry, extension_type: ExtensionType) -> None:
    """Store an ExtensionType on an entry, omitting the key for tools."""
    encoded = extension_type.to_json()
    if encoded is None:
        entry.pop("type", None)
    else:
        entry["type"] = encoded


def stub_entry(entry: CatalogEntry) -> None:
    """Reduce an entry in place to its identity fields.

    The entry keeps its place in the manifest so that a later reappearance
    of the item counts as an update rather than an addition.
    """
    for key in list(entry.keys()):
        if key not in STUB_KEYS:
            del entry[key]  # type: ignore[misc]


def is_stub(entry: CatalogEntry) -> bool:
    """True if the entry only carries identity fields."""
    return set(entry.keys()) <= set(STUB_KEYS)
