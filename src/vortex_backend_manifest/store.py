"""Persistence of JSON manifest documents.

Every save writes a timestamped snapshot into the archive directory and
replaces the canonical file. Both files are staged next to their targets
first so that a failed write never leaves a truncated document behind.
"""

import json
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from jsonschema import ValidationError

from .constants import MANIFEST_FILENAME
from .core.validator import validate_manifest
from .errors import ManifestStoreError

ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M"


def archive_filename(filename: str, now: datetime | None = None, label: str | None = None) -> str:
    """Name of the archive snapshot for a canonical file.

    Example:
        >>> archive_filename("extensions-manifest.json", datetime(2024, 3, 9, 7, 5))
        '20240309_0705_extensions-manifest.json'
        >>> archive_filename("extensions-manifest.json", datetime(2024, 3, 9, 7, 5), "before-sanitize")
        '20240309_0705_before-sanitize_extensions-manifest.json'
    """
    now = now or datetime.now()
    prefix = now.strftime(ARCHIVE_TIMESTAMP_FORMAT)
    if label:
        prefix = f"{prefix}_{label}"
    return f"{prefix}_{filename}"


def serialize(document: Any) -> str:
    """Serialize a document the way it is stored on disk (2-space indent)."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def _identity(entry: Any) -> Any:
    if isinstance(entry, dict):
        if entry.get("modId") is not None:
            return entry["modId"]
        if entry.get("id") is not None:
            return entry["id"]
    return serialize(entry)


def _entries(document: Any) -> list[Any]:
    if isinstance(document, dict):
        return list(document.get("extensions") or [])
    if isinstance(document, list):
        return document
    return []


def summarize_changes(before: Any, after: Any) -> str:
    """Entry-level difference between two documents.

    Entries of a manifest are matched by modId, falling back to id;
    entries of plain lists by id.

    Example:
        >>> summarize_changes([{"id": "a"}], [{"id": "a"}, {"id": "b"}])
        'added: 1, updated: 0, removed: 0'
    """
    old = {_identity(entry): entry for entry in _entries(before)}
    new = {_identity(entry): entry for entry in _entries(after)}
    added = sum(1 for key in new if key not in old)
    removed = sum(1 for key in old if key not in new)
    updated = sum(1 for key, entry in new.items() if key in old and old[key] != entry)
    return f"added: {added}, updated: {updated}, removed: {removed}"


def _stage(directory: Path, content: str) -> Path:
    fd, name = tempfile.mkstemp(dir=directory, prefix=".staged-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError:
        os.unlink(name)
        raise
    return Path(name)


class ManifestStore:
    """Loads and saves one JSON document plus its archive snapshots.

    Example:
        >>> store = ManifestStore(Path("out"), Path("archive"))
        >>> manifest = store.load()
        >>> store.save(manifest)
    """

    def __init__(
        self,
        manifest_dir: Path,
        archive_dir: Path,
        filename: str = MANIFEST_FILENAME,
        dry_run: bool = False,
        validator: Callable[[Any], None] | None = validate_manifest,
    ):
        """Initialize the store.

        Args:
            manifest_dir: Directory of the canonical file
            archive_dir: Directory receiving snapshots (created on save)
            filename: Canonical file name
            dry_run: Validate and report, but never write
            validator: Called with the document on load and before save;
                raises jsonschema.ValidationError when it is invalid
        """
        self.manifest_dir = Path(manifest_dir)
        self.archive_dir = Path(archive_dir)
        self.filename = filename
        self.dry_run = dry_run
        self.validator = validator

    @property
    def path(self) -> Path:
        """Path of the canonical file."""
        return self.manifest_dir / self.filename

    def _validate(self, document: Any, action: str) -> None:
        if self.validator is None:
            return
        try:
            self.validator(document)
        except ValidationError as e:
            raise ManifestStoreError(f"Cannot {action} {self.path}: {e.message}") from e

    def load(self) -> Any:
        """Read and validate the canonical file.

        Returns:
            The parsed document

        Raises:
            ManifestStoreError: If the file is missing, not JSON, or invalid
        """
        try:
            with self.path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError as e:
            raise ManifestStoreError(f"Manifest not found: {self.path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ManifestStoreError(f"Failed to read {self.path}: {e}") from e

        self._validate(document, "load")
        return document

    def _read_current(self) -> Any:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            print(f"Warning: Cannot compare with {self.path}: {e}", file=sys.stderr)
            return None

    def sibling(self, filename: str, validator: Callable[[Any], None] | None = None) -> "ManifestStore":
        """Store for another file sharing this store's directories and mode."""
        return ManifestStore(
            self.manifest_dir,
            self.archive_dir,
            filename=filename,
            dry_run=self.dry_run,
            validator=validator,
        )

    def archive(self, document: Any, label: str | None = None, now: datetime | None = None) -> Path | None:
        """Write a snapshot into the archive directory only.

        Args:
            document: Document to snapshot
            label: Inserted between the timestamp and the file name
            now: Wall-clock time used for the archive name

        Returns:
            Path of the snapshot, or None in dry run mode

        Raises:
            ManifestStoreError: If the snapshot cannot be written
        """
        archive_path = self.archive_dir / archive_filename(self.filename, now, label)
        if self.dry_run:
            print(f"Dry run: would write {archive_path}", file=sys.stderr)
            return None

        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            staged = _stage(self.archive_dir, serialize(document))
        except OSError as e:
            raise ManifestStoreError(f"Failed to stage {self.filename}: {e}") from e

        try:
            os.replace(staged, archive_path)
        except OSError as e:
            staged.unlink(missing_ok=True)
            raise ManifestStoreError(f"Failed to write archive {archive_path}: {e}") from e

        print(f"Archived {self.filename} as {archive_path.name}", file=sys.stderr)
        return archive_path

    def save(self, document: Any, now: datetime | None = None) -> Path | None:
        """Write the archive snapshot and replace the canonical file.

        Args:
            document: Document to persist
            now: Wall-clock time used for the archive name

        Returns:
            Path of the archive snapshot, or None in dry run mode

        Raises:
            ManifestStoreError: If validation or either write fails; a
                snapshot written before a failed canonical write is removed
        """
        self._validate(document, "save")
        content = serialize(document)
        archive_path = self.archive_dir / archive_filename(self.filename, now)

        if self.dry_run:
            print(
                f"Dry run: would write {self.path} and {archive_path} "
                f"({summarize_changes(self._read_current(), document)})",
                file=sys.stderr,
            )
            return None

        staged: list[Path] = []
        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            self.manifest_dir.mkdir(parents=True, exist_ok=True)
            staged_archive = _stage(self.archive_dir, content)
            staged.append(staged_archive)
            staged_canonical = _stage(self.manifest_dir, content)
            staged.append(staged_canonical)
        except OSError as e:
            for path in staged:
                path.unlink(missing_ok=True)
            raise ManifestStoreError(f"Failed to stage {self.filename}: {e}") from e

        try:
            os.replace(staged_archive, archive_path)
        except OSError as e:
            staged_archive.unlink(missing_ok=True)
            staged_canonical.unlink(missing_ok=True)
            raise ManifestStoreError(f"Failed to write archive {archive_path}: {e}") from e

        try:
            os.replace(staged_canonical, self.path)
        except OSError as e:
            staged_canonical.unlink(missing_ok=True)
            archive_path.unlink(missing_ok=True)
            raise ManifestStoreError(f"Failed to write {self.path}: {e}") from e

        print(f"Saved {self.path} (archived as {archive_path.name})", file=sys.stderr)
        return archive_path
