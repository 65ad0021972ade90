"""Template for plugging a custom marketplace into the refresh flow.

This example demonstrates the complete pattern:
- EntrySource implementation answering item, file and listing lookups
- Registration with SourceRegistry
- A dry-run refresh against a throwaway manifest directory

The source serves a fixed in-memory catalog, so the example runs offline.
"""

import json
import tempfile
import time
from pathlib import Path

from vortex_backend_manifest import ManifestStore, OutcomeKind, RefreshPipeline, SourceRegistry
from vortex_backend_manifest.errors import EntryNotFoundError
from vortex_backend_manifest.platforms.nexus import NexusEntryTransformer
from vortex_backend_manifest.sources.base import (
    EntrySource,
    GameInfo,
    ItemFile,
    ItemInfo,
    UpdateEntry,
)
from vortex_backend_manifest.transformers.base import Transformer


# Step 1: Implement the EntrySource interface
class StaticCatalogSource(EntrySource):
    """Source serving a fixed catalog of items."""

    def __init__(self, items: dict[int, tuple[ItemInfo, list[ItemFile]]]):
        self.items = items
        # Entries use the marketplace layout, so the stock transformer fits
        self._transformer = NexusEntryTransformer()

    def get_item_info(self, mod_id: int) -> ItemInfo:
        if mod_id not in self.items:
            raise EntryNotFoundError(f"Not found: {mod_id}")
        return self.items[mod_id][0]

    def get_item_files(self, mod_id: int) -> list[ItemFile]:
        if mod_id not in self.items:
            raise EntryNotFoundError(f"Not found: {mod_id}")
        return self.items[mod_id][1]

    def get_recently_updated(self, period: str) -> list[UpdateEntry]:
        now = int(time.time())
        return [UpdateEntry(mod_id, latest_file_update=now) for mod_id in self.items]

    def get_game_info(self, domain: str) -> GameInfo:
        raise EntryNotFoundError(f"Unknown game: {domain}")

    def get_transformer(self) -> Transformer:
        return self._transformer


# Step 2: Register a factory
def _create_static_source(**kwargs) -> StaticCatalogSource:
    theme = ItemInfo(
        mod_id=1001,
        name="Midnight Theme",
        category_id=13,
        author="Example Author",
        uploaded_by="example",
        summary="A dark theme",
        picture_url="https://example.com/midnight.png",
    )
    files = [
        ItemFile(file_id=5, category_id=1, version="1.0.0", uploaded_timestamp=1_690_000_000),
        ItemFile(file_id=9, category_id=1, version="1.1.0", uploaded_timestamp=1_695_000_000,
                 description="requires vortex &gt;=1.8.0"),
    ]
    return StaticCatalogSource({1001: (theme, files)})


SourceRegistry.register_factory('static', _create_static_source)


def main():
    """Run a dry-run refresh against a temporary manifest."""
    source = SourceRegistry.create_source('static')

    with tempfile.TemporaryDirectory() as tmp:
        manifest_dir = Path(tmp) / "out"
        manifest_dir.mkdir()
        (manifest_dir / "extensions-manifest.json").write_text(
            json.dumps({"last_updated": int(time.time() * 1000) - 3_600_000, "extensions": []}),
            encoding="utf-8",
        )

        # Step 3: Run the flow
        store = ManifestStore(manifest_dir, Path(tmp) / "archive", dry_run=True)
        result = RefreshPipeline(source, store).run()

        for outcome in result.of_kind(OutcomeKind.ADDED):
            print(f"Would add {outcome.entry['name']} (file {outcome.entry['fileId']})")


if __name__ == "__main__":
    main()
