"""Nexus Mods transformer for catalog entries.

This module converts marketplace metadata plus the tracked main file into
extensions manifest entries.
"""

from typing import Any

from ...constants import GAME_TILE_URL
from ...core.dependencies import dependencies_from_description
from ...core.normalizer import normalize_entry, set_entry_type
from ...core.types import CatalogEntry, ExtensionType, ExtraInfo
from ...sources.base import GameInfo, ItemFile, ItemInfo
from ...transformers.base import Transformer


def extra_info_for_game(game: GameInfo) -> ExtraInfo:
    """Extra info recorded on game extensions for a resolved site domain."""
    return ExtraInfo(gameName=game.name, gameId=game.domain_name)


class NexusEntryTransformer(Transformer):
    """Transformer for Nexus Mods items.

    Builds entries in canonical field order. ``type`` is omitted for tools,
    ``gameName``/``gameId``/``language`` only appear when extra info
    supplies them.
    """

    def transform(
        self,
        data: ItemInfo,
        file: ItemFile | None = None,
        extension_type: ExtensionType = ExtensionType.TOOL,
        extra: ExtraInfo | None = None,
        dependencies: dict[str, str] | None = None,
        game: GameInfo | None = None,
        **kwargs: Any,
    ) -> CatalogEntry:
        """Transform item metadata into a catalog entry.

        Args:
            data: Item metadata
            file: The tracked (latest compatible) main file
            extension_type: Classified type of the item
            extra: gameName/gameId/language to record
            dependencies: Dependencies already recorded for the item
            game: Resolved game page; supplies gameName/gameId and the
                fallback image for game extensions

        Returns:
            Normalized catalog entry

        Raises:
            ValueError: If no file is given
        """
        if file is None:
            raise ValueError(f"{data.mod_id}: a main file is required to build an entry")

        extra = dict(extra or {})
        image = data.picture_url
        if game is not None:
            extra.update(extra_info_for_game(game))
            if image is None:
                image = GAME_TILE_URL.format(game_id=game.id)

        entry: dict[str, Any] = {
            "modId": data.mod_id,
            "fileId": file.file_id,
            "author": data.author,
            "uploader": data.uploaded_by,
            "description": {
                "short": data.summary or "",
                "long": data.description or "",
            },
            "downloads": data.mod_unique_downloads,
            "endorsements": data.endorsement_count,
            "image": image,
            "name": data.name,
            "timestamp": file.uploaded_timestamp,
            "tags": [],
            "version": file.version,
            "gameName": extra.get("gameName"),
            "gameId": extra.get("gameId"),
            "language": extra.get("language"),
            "dependencies": dependencies_from_description(dependencies, file.description),
        }
        set_entry_type(entry, extension_type)  # type: ignore[arg-type]

        return normalize_entry(entry)  # type: ignore[arg-type]
