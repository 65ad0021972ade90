"""Shared fixtures for the manifest automation tests.

Provides an in-memory marketplace (FakeEntrySource), builders for item
metadata, files and manifest entries, and a ManifestStore rooted in a
temporary directory. Nothing here touches the network.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from vortex_backend_manifest.errors import EntryLookupError, EntryNotFoundError
from vortex_backend_manifest.platforms.nexus.transformer import NexusEntryTransformer
from vortex_backend_manifest.sources.base import (
    EntrySource,
    GameInfo,
    ItemFile,
    ItemInfo,
    UpdateEntry,
)
from vortex_backend_manifest.store import ManifestStore

STARTED = 1_700_000_000_000  # epoch ms used as "now" by the pipeline tests


def build_info(mod_id: int, **overrides: Any) -> ItemInfo:
    values: dict[str, Any] = {
        "name": f"Extension {mod_id}",
        "status": "published",
        "category_id": 13,
        "author": "author",
        "uploaded_by": "uploader",
        "summary": "short",
        "description": "long",
        "picture_url": f"https://example.com/{mod_id}.jpg",
        "mod_unique_downloads": 10,
        "endorsement_count": 2,
        "version": "1.0.0",
    }
    values.update(overrides)
    return ItemInfo(mod_id=mod_id, **values)


def build_file(file_id: int, **overrides: Any) -> ItemFile:
    values: dict[str, Any] = {
        "category_id": 1,
        "version": "1.0.0",
        "uploaded_timestamp": 1_690_000_000,
        "description": "",
        "name": "Main file",
        "file_name": f"file-{file_id}.7z",
    }
    values.update(overrides)
    return ItemFile(file_id=file_id, **values)


def build_entry(mod_id: int, file_id: int, **overrides: Any) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "modId": mod_id,
        "fileId": file_id,
        "author": "author",
        "uploader": "uploader",
        "description": {"short": "short", "long": "long"},
        "downloads": 5,
        "endorsements": 1,
        "image": f"https://example.com/{mod_id}.jpg",
        "name": f"Extension {mod_id}",
        "timestamp": 1_680_000_000,
        "tags": [],
        "version": "0.9.0",
        "type": "theme",
    }
    entry.update(overrides)
    return entry


def write_document(directory: Path, document: Any, filename: str = "extensions-manifest.json") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return path


class FakeEntrySource(EntrySource):
    """In-memory marketplace.

    Items are registered with add(); lookups for unknown ids raise
    EntryNotFoundError. Any exception stored with fail() is raised by
    the corresponding lookup.
    """

    def __init__(self):
        self.infos: dict[int, ItemInfo | Exception] = {}
        self.files: dict[int, list[ItemFile] | Exception] = {}
        self.updates: list[UpdateEntry] | Exception = []
        self.games: dict[str, GameInfo] = {}
        self.file_calls: list[int] = []
        self.periods: list[str] = []
        self._transformer = NexusEntryTransformer()

    def add(self, info: ItemInfo, files: list[ItemFile] | None = None) -> None:
        self.infos[info.mod_id] = info
        self.files[info.mod_id] = list(files or [])

    def fail(self, mod_id: int, error: Exception) -> None:
        self.infos[mod_id] = error

    def get_item_info(self, mod_id: int) -> ItemInfo:
        value = self.infos.get(mod_id)
        if value is None:
            raise EntryNotFoundError(f"Not found: {mod_id}")
        if isinstance(value, Exception):
            raise value
        return value

    def get_item_files(self, mod_id: int) -> list[ItemFile]:
        self.file_calls.append(mod_id)
        value = self.files.get(mod_id)
        if value is None:
            raise EntryNotFoundError(f"No files: {mod_id}")
        if isinstance(value, Exception):
            raise value
        return value

    def get_recently_updated(self, period: str) -> list[UpdateEntry]:
        self.periods.append(period)
        if isinstance(self.updates, Exception):
            raise self.updates
        return self.updates

    def get_game_info(self, domain: str) -> GameInfo:
        if domain not in self.games:
            raise EntryLookupError(f"Unknown game: {domain}")
        return self.games[domain]

    def get_transformer(self) -> NexusEntryTransformer:
        return self._transformer


@pytest.fixture
def fake_source() -> FakeEntrySource:
    """Empty in-memory marketplace."""
    return FakeEntrySource()


@pytest.fixture
def make_info():
    """Builder for ItemInfo with sensible published-theme defaults."""
    return build_info


@pytest.fixture
def make_file():
    """Builder for main-category ItemFile objects."""
    return build_file


@pytest.fixture
def make_entry():
    """Builder for complete, valid manifest entries."""
    return build_entry


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def archive_dir(tmp_path: Path) -> Path:
    return tmp_path / "archive"


@pytest.fixture
def store(manifest_dir: Path, archive_dir: Path) -> ManifestStore:
    """Store rooted in the temporary directory (no file written yet)."""
    return ManifestStore(manifest_dir, archive_dir)


@pytest.fixture
def write_manifest(manifest_dir: Path):
    """Write a manifest document into the store's directory."""
    def _write(manifest: dict[str, Any], filename: str = "extensions-manifest.json") -> Path:
        return write_document(manifest_dir, manifest, filename)
    return _write
