"""Mod spotlight video list.

``modspotlights.json`` is a JSON array of ``{date, id, videoid}`` objects,
one per featured YouTube video, saved with the same archive contract as
the extensions manifest.
"""

import sys
import time
import uuid
from typing import Any, TypedDict

import jsonschema

from .constants import SPOTLIGHTS_FILENAME
from .errors import PreconditionError, RejectedError
from .store import ManifestStore

VIDEO_ID_MARKER = "watch?v="

SPOTLIGHTS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Mod Spotlights",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["date", "id", "videoid"],
        "properties": {
            "date": {"type": "number"},
            "id": {"type": "string", "minLength": 1},
            "videoid": {"type": "string", "minLength": 1},
        },
    },
}


class SpotlightEntry(TypedDict):
    """One featured video."""

    date: int
    id: str
    videoid: str


def validate_spotlights(document: Any) -> None:
    """Validate a spotlight list.

    Raises:
        jsonschema.ValidationError: If the document is malformed
    """
    jsonschema.validate(instance=document, schema=SPOTLIGHTS_SCHEMA)


def extract_video_id(url: str) -> str:
    """Extract the video id from a YouTube ``watch?v=`` URL.

    Raises:
        PreconditionError: If the URL has no ``watch?v=`` part

    Example:
        >>> extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42")
        'dQw4w9WgXcQ'
    """
    if VIDEO_ID_MARKER not in url:
        raise PreconditionError(f"Invalid URL: {url}")
    video_id = url.split(VIDEO_ID_MARKER, 1)[1].split("&", 1)[0]
    if not video_id:
        raise PreconditionError(f"Invalid URL: {url}")
    return video_id


def spotlight_store(manifest_store: ManifestStore) -> ManifestStore:
    """Store for the spotlight list next to an extensions manifest store."""
    return manifest_store.sibling(SPOTLIGHTS_FILENAME, validator=validate_spotlights)


def add_spotlight(store: ManifestStore, link: str, now_ms: int | None = None) -> SpotlightEntry:
    """Append a video to the spotlight list and save it.

    Args:
        store: Store of the spotlight list
        link: YouTube watch URL
        now_ms: Entry date in epoch milliseconds (defaults to now)

    Returns:
        The new entry

    Raises:
        PreconditionError: If the link is invalid or the list unreadable
        RejectedError: If the video is already listed
    """
    if not link:
        raise PreconditionError("No video link given")

    video_id = extract_video_id(link)
    entries = store.load()

    if any(entry.get("videoid") == video_id for entry in entries):
        print(f"Entry for video {video_id} already exists, rejecting...", file=sys.stderr)
        raise RejectedError("Entry already exists")

    entry = SpotlightEntry(
        date=now_ms if now_ms is not None else int(time.time() * 1000),
        id=uuid.uuid4().hex,
        videoid=video_id,
    )
    entries.append(entry)
    store.save(entries)
    return entry
