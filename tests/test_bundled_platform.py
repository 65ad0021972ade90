"""Tests for the bundled game extensions platform.

Tests cover:
- BundledGamesSource folder discovery and descriptor reading
- Exclusions and unreadable descriptors
- BundledGameTransformer create vs. sync fields
"""

import json
from pathlib import Path

import pytest

from vortex_backend_manifest.errors import PreconditionError
from vortex_backend_manifest.platforms.bundled import (
    BundledGameTransformer,
    BundledGamesSource,
    game_name_from_title,
)
from vortex_backend_manifest.sources.base import GameDescriptor


@pytest.fixture
def games_dir(tmp_path):
    """Checkout with two games, an excluded one and some noise."""
    root = tmp_path / "vortex-games"
    games = {
        "game-witcher3": {"name": "Game: The Witcher 3", "author": "Black Tree", "version": "1.4.0"},
        "game-fallout4": {"name": "Game: Fallout 4", "author": "Black Tree", "version": "0.9.1", "id": "fallout4"},
        "game-subnautica": {"name": "Game: Subnautica", "version": "1.0.0"},
    }
    for folder, info in games.items():
        (root / folder).mkdir(parents=True)
        (root / folder / "info.json").write_text(json.dumps(info), encoding="utf-8")

    (root / "game-broken").mkdir()
    (root / "game-broken" / "info.json").write_text("{oops", encoding="utf-8")
    (root / "game-empty").mkdir()
    (root / "tools").mkdir()
    (root / "game-readme.md").write_text("not a folder", encoding="utf-8")
    return root


# ============================================================================
# TestBundledGamesSource
# ============================================================================

class TestBundledGamesSource:
    """Tests for BundledGamesSource."""

    def test_missing_root_raises(self, tmp_path):
        """Test that a missing checkout is a precondition failure."""
        with pytest.raises(PreconditionError, match="does not exist"):
            BundledGamesSource(tmp_path / "missing")

    def test_file_root_raises(self, tmp_path):
        """Test that the checkout must be a directory."""
        path = tmp_path / "file"
        path.write_text("x", encoding="utf-8")
        with pytest.raises(PreconditionError, match="not a directory"):
            BundledGamesSource(path)

    def test_lists_game_folders_sorted(self, games_dir):
        """Test discovery, ordering and the default exclusions."""
        source = BundledGamesSource(games_dir)
        names = [path.name for path in source.list_folders()]
        assert names == ["game-broken", "game-empty", "game-fallout4", "game-witcher3"]

    def test_custom_exclusions(self, games_dir):
        """Test that exclusions can be overridden."""
        source = BundledGamesSource(games_dir, exclusions=["game-witcher3"])
        names = [path.name for path in source.list_folders()]
        assert "game-subnautica" in names
        assert "game-witcher3" not in names

    def test_unreadable_descriptors_are_skipped(self, games_dir, capsys):
        """Test that broken or missing info.json files are reported."""
        source = BundledGamesSource(games_dir)

        descriptors = source.list_descriptors()

        assert [d.folder for d in descriptors] == ["game-fallout4", "game-witcher3"]
        err = capsys.readouterr().err
        assert "game-broken" in err
        assert "game-empty" in err

    def test_descriptor_id_prefers_explicit_id(self, games_dir):
        """Test the id fallback to the folder name."""
        descriptors = BundledGamesSource(games_dir).list_descriptors()
        assert [d.id for d in descriptors] == ["fallout4", "game-witcher3"]

    def test_get_transformer(self, games_dir):
        """Test that the source hands out its transformer."""
        assert isinstance(BundledGamesSource(games_dir).get_transformer(), BundledGameTransformer)


# ============================================================================
# TestBundledGameTransformer
# ============================================================================

class TestBundledGameTransformer:
    """Tests for BundledGameTransformer."""

    @pytest.fixture
    def descriptor(self):
        return GameDescriptor(
            folder="game-witcher3",
            path=Path("game-witcher3"),
            info={"name": "Game: The Witcher 3", "author": "Black Tree", "version": "1.4.0",
                  "description": "Support for The Witcher 3"},
        )

    def test_create_has_full_entry_in_order(self, descriptor):
        """Test the key order of newly created entries."""
        entry = BundledGameTransformer().transform(descriptor, create=True)

        assert list(entry.keys()) == [
            "image", "name", "type", "github", "githubRawPath",
            "id", "hide", "author", "gameName", "description", "version",
        ]
        assert entry["image"] == (
            "https://raw.githubusercontent.com/Nexus-Mods/vortex-games/release/game-witcher3/gameart.jpg"
        )
        assert entry["github"] == "Nexus-Mods/vortex-games"
        assert entry["name"] == "Game: The Witcher 3"

    def test_sync_fields_only(self, descriptor):
        """Test that updates refresh the image but not create-only fields."""
        entry = BundledGameTransformer().transform(descriptor)

        assert "name" not in entry
        assert entry["image"] == (
            "https://raw.githubusercontent.com/Nexus-Mods/vortex-games/release/game-witcher3/gameart.jpg"
        )
        assert entry["hide"] is True
        assert entry["type"] == "game"
        assert entry["gameName"] == "The Witcher 3"
        assert entry["description"] == {
            "short": "Support for The Witcher 3",
            "long": "Support for The Witcher 3",
        }

    def test_game_name_strips_prefix_by_length(self):
        """Test the "Game: " convention."""
        assert game_name_from_title("Game: Skyrim") == "Skyrim"
        assert game_name_from_title("Skyrim Special") == " Special"
