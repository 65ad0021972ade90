"""Bundled game transformer for catalog entries."""

from typing import Any

from ...constants import GAME_ART_URL, GAMES_BRANCH_NAME, GAMES_REPO_SLUG, GAME_NAME_PREFIX
from ...core.types import CatalogEntry, ExtensionType
from ...sources.base import GameDescriptor
from ...transformers.base import Transformer


def game_name_from_title(title: str) -> str:
    """Strip the conventional "Game: " prefix from an extension name.

    The prefix is removed by length, whether or not it is present, so
    names must follow the convention.
    """
    return title[len(GAME_NAME_PREFIX):]


class BundledGameTransformer(Transformer):
    """Transformer for bundled game descriptors.

    Produces the fields that are synchronized on every run, the image
    included, plus the identity and source fields when the entry is
    being created.
    """

    def transform(self, data: GameDescriptor, create: bool = False, **kwargs: Any) -> CatalogEntry:
        """Transform a descriptor into catalog entry fields.

        Args:
            data: Bundled game descriptor
            create: Include the fields only set on new entries

        Returns:
            Entry fields (a full entry when create is True)
        """
        info = data.info
        name = info.get("name") or ""
        description = info.get("description") or ""

        entry: dict[str, Any] = {
            "image": GAME_ART_URL.format(branch=GAMES_BRANCH_NAME, folder=data.folder),
        }
        if create:
            entry.update({
                "name": name,
                "type": ExtensionType.GAME.value,
                "github": GAMES_REPO_SLUG,
                "githubRawPath": data.folder,
            })

        entry.update({
            "id": data.id,
            "hide": True,
            "type": ExtensionType.GAME.value,
            "author": info.get("author") or "",
            "gameName": game_name_from_title(name),
            "description": {
                "short": description,
                "long": description,
            },
            "version": info.get("version") or "",
        })
        return entry  # type: ignore[return-value]
