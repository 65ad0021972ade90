"""Tests for manifest persistence.

Tests cover:
- Archive snapshot naming
- Save/load with schema validation on both sides
- Dry run mode writing nothing, reporting entry-level changes
- Labelled snapshots and sibling stores
- Rollback of the archive snapshot when the canonical write fails
"""

import json
import os
from datetime import datetime

import pytest

from vortex_backend_manifest.errors import ManifestStoreError, PreconditionError
from vortex_backend_manifest.store import ManifestStore, archive_filename, serialize, summarize_changes

NOW = datetime(2024, 3, 9, 7, 5)


@pytest.fixture
def manifest(make_entry):
    return {"last_updated": 1_700_000_000_000, "extensions": [make_entry(1, 10)]}


# ============================================================================
# TestArchiveNaming
# ============================================================================

class TestArchiveNaming:
    """Tests for archive_filename()."""

    def test_prefixes_timestamp(self):
        """Test the YYYYMMDD_HHMM_ prefix."""
        assert archive_filename("extensions-manifest.json", NOW) == "20240309_0705_extensions-manifest.json"

    def test_label_follows_timestamp(self):
        """Test labelled snapshot names."""
        assert archive_filename("extensions-manifest.json", NOW, "before-sanitize") == (
            "20240309_0705_before-sanitize_extensions-manifest.json"
        )

    def test_serialize_uses_two_space_indent(self):
        """Test the on-disk JSON formatting."""
        assert serialize({"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}'

    def test_serialize_keeps_unicode(self):
        """Test that non-ASCII text is not escaped."""
        assert serialize({"name": "Übersetzung"}) == '{\n  "name": "Übersetzung"\n}'


# ============================================================================
# TestManifestStore
# ============================================================================

class TestManifestStore:
    """Tests for ManifestStore load/save."""

    def test_load_missing_file_raises(self, store):
        """Test that a missing manifest is a precondition failure."""
        with pytest.raises(ManifestStoreError, match="Manifest not found"):
            store.load()

    def test_store_errors_are_preconditions(self):
        """Test that store failures abort runs like other preconditions."""
        assert issubclass(ManifestStoreError, PreconditionError)

    def test_load_invalid_json_raises(self, store, manifest_dir):
        """Test that unparseable files are rejected."""
        manifest_dir.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ManifestStoreError, match="Failed to read"):
            store.load()

    def test_load_schema_violation_raises(self, store, write_manifest):
        """Test that loaded documents are validated."""
        write_manifest({"extensions": []})
        with pytest.raises(ManifestStoreError, match="Cannot load"):
            store.load()

    def test_save_writes_archive_and_canonical(self, store, manifest, archive_dir):
        """Test that both files carry identical content."""
        archive_path = store.save(manifest, now=NOW)

        assert archive_path == archive_dir / "20240309_0705_extensions-manifest.json"
        assert archive_path.read_text(encoding="utf-8") == serialize(manifest)
        assert store.path.read_text(encoding="utf-8") == serialize(manifest)
        assert store.load() == manifest

    def test_save_leaves_no_staged_files(self, store, manifest, manifest_dir, archive_dir):
        """Test that staging files are renamed into place."""
        store.save(manifest, now=NOW)
        assert list(manifest_dir.glob(".staged-*")) == []
        assert list(archive_dir.glob(".staged-*")) == []

    def test_save_rejects_invalid_document(self, store, manifest, manifest_dir, archive_dir):
        """Test that nothing is written for an invalid document."""
        manifest["extensions"].append({"modId": 1, "fileId": 11})

        with pytest.raises(ManifestStoreError, match="duplicate modId 1"):
            store.save(manifest, now=NOW)

        assert not manifest_dir.exists()
        assert not archive_dir.exists()

    def test_dry_run_writes_nothing(self, manifest_dir, archive_dir, manifest, capsys):
        """Test that dry run validates and reports only."""
        store = ManifestStore(manifest_dir, archive_dir, dry_run=True)

        assert store.save(manifest, now=NOW) is None

        assert not manifest_dir.exists()
        assert not archive_dir.exists()
        assert "Dry run: would write" in capsys.readouterr().err

    def test_canonical_failure_removes_archive(self, store, manifest, make_entry, write_manifest, archive_dir, monkeypatch):
        """Test that a failed canonical write leaves no half-applied save."""
        original = {"last_updated": 1, "extensions": [make_entry(5, 50)]}
        write_manifest(original)
        real_replace = os.replace
        targets = []

        def flaky_replace(src, dst):
            targets.append(dst)
            if len(targets) == 2:
                raise OSError("disk full")
            real_replace(src, dst)

        monkeypatch.setattr(os, "replace", flaky_replace)

        with pytest.raises(ManifestStoreError, match="disk full"):
            store.save(manifest, now=NOW)

        assert list(archive_dir.iterdir()) == []
        assert json.loads(store.path.read_text(encoding="utf-8")) == original
        assert list(store.path.parent.glob(".staged-*")) == []

    def test_custom_validator(self, manifest_dir, archive_dir):
        """Test that documents other than manifests can be stored."""
        store = ManifestStore(manifest_dir, archive_dir, filename="list.json", validator=None)
        store.save([1, 2, 3], now=NOW)
        assert store.load() == [1, 2, 3]
        assert (archive_dir / "20240309_0705_list.json").exists()

    def test_dry_run_reports_changes(self, manifest_dir, archive_dir, make_entry, write_manifest, capsys):
        """Test that dry run summarizes what the save would change."""
        write_manifest({"last_updated": 1, "extensions": [make_entry(1, 10), make_entry(2, 20), make_entry(3, 30)]})
        store = ManifestStore(manifest_dir, archive_dir, dry_run=True)

        store.save({"last_updated": 2, "extensions": [make_entry(1, 11), make_entry(3, 30), make_entry(4, 40)]})

        assert "(added: 1, updated: 1, removed: 1)" in capsys.readouterr().err
        assert not archive_dir.exists()

    def test_archive_only_writes_snapshot(self, store, manifest, write_manifest, archive_dir):
        """Test labelled snapshots leave the canonical file alone."""
        write_manifest({"last_updated": 1, "extensions": []})

        path = store.archive(manifest, label="before-sanitize", now=NOW)

        assert path.name == "20240309_0705_before-sanitize_extensions-manifest.json"
        assert json.loads(path.read_text(encoding="utf-8")) == manifest
        assert json.loads(store.path.read_text(encoding="utf-8"))["extensions"] == []

    def test_archive_dry_run(self, manifest_dir, archive_dir, manifest):
        """Test that dry run snapshots are not written."""
        store = ManifestStore(manifest_dir, archive_dir, dry_run=True)
        assert store.archive(manifest, label="before-sanitize") is None
        assert not archive_dir.exists()

    def test_sibling_shares_directories(self, manifest_dir, archive_dir):
        """Test stores derived for other files."""
        store = ManifestStore(manifest_dir, archive_dir, dry_run=True)
        sibling = store.sibling("list.json")
        assert sibling.path == manifest_dir / "list.json"
        assert sibling.archive_dir == archive_dir
        assert sibling.dry_run is True
        assert sibling.validator is None


# ============================================================================
# TestSummarizeChanges
# ============================================================================

class TestSummarizeChanges:
    """Tests for summarize_changes()."""

    def test_manifest_entries_match_by_mod_id_then_id(self, make_entry):
        """Test identity matching of marketplace and bundled entries."""
        before = {"extensions": [make_entry(1, 10), {"id": "game-skyrim", "version": "1.0.0"}]}
        after = {"extensions": [make_entry(1, 10), {"id": "game-skyrim", "version": "1.1.0"}]}
        assert summarize_changes(before, after) == "added: 0, updated: 1, removed: 0"

    def test_nothing_on_disk(self, make_entry):
        """Test that everything counts as added against no document."""
        assert summarize_changes(None, {"extensions": [make_entry(1, 10)]}) == "added: 1, updated: 0, removed: 0"

    def test_plain_lists(self):
        """Test lists of featured entries."""
        before = [{"id": "a", "link": "x"}]
        after = [{"id": "a", "link": "x"}, {"id": "b", "link": "y"}]
        assert summarize_changes(before, after) == "added: 1, updated: 0, removed: 0"
