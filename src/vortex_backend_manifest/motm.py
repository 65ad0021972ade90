"""Mods of the month list.

``modsofthemonth.json`` is a JSON array of ``{date, id, link}`` objects,
one per featured video, saved with the same archive contract as the
extensions manifest.
"""

import sys
import time
import uuid
from typing import Any, TypedDict

import jsonschema

from .constants import MOTM_FILENAME
from .errors import PreconditionError, RejectedError
from .store import ManifestStore

MOTM_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Mods of the Month",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["date", "id", "link"],
        "properties": {
            "date": {"type": "number"},
            "id": {"type": "string", "minLength": 1},
            "link": {"type": "string", "minLength": 1},
        },
    },
}


class MotmEntry(TypedDict):
    date: int
    id: str
    link: str


def validate_motm(document: Any) -> None:
    jsonschema.validate(instance=document, schema=MOTM_SCHEMA)


def parse_motm_date(raw: str | None) -> int | None:
    """Parse an optional entry date given as epoch milliseconds.

    Raises:
        PreconditionError: If the value is not a number
    """
    if raw is None or not raw.strip():
        return None
    try:
        return int(float(raw))
    except (ValueError, OverflowError) as e:
        raise PreconditionError(f"MOTM date is not a unix timestamp number: '{raw}'") from e


def motm_store(manifest_store: ManifestStore) -> ManifestStore:
    """Store for the mods of the month list next to a manifest store."""
    return manifest_store.sibling(MOTM_FILENAME, validator=validate_motm)


def add_motm(store: ManifestStore, link: str, date_ms: int | None = None) -> MotmEntry:
    """Append a video link to the mods of the month list and save it.

    Args:
        store: Store of the mods of the month list
        link: Video link, matched verbatim against existing entries
        date_ms: Entry date in epoch milliseconds (defaults to now)

    Returns:
        The new entry

    Raises:
        PreconditionError: If no link is given or the list is unreadable
        RejectedError: If the link is already listed
    """
    if not link:
        raise PreconditionError("No mods of the month link given")

    entries = store.load()
    if any(entry.get("link") == link for entry in entries):
        print(f"Entry for {link} already exists, rejecting...", file=sys.stderr)
        raise RejectedError("Entry already exists")

    entry = MotmEntry(
        date=date_ms if date_ms is not None else int(time.time() * 1000),
        id=uuid.uuid4().hex,
        link=link,
    )
    entries.append(entry)
    store.save(entries)
    return entry
