"""Type definitions for the extensions manifest.

This module defines TypedDict classes that mirror the JSON schema structure
defined in schemas/extensions-manifest.schema.json, plus the ExtensionType
enum used to classify catalog entries.
"""

from enum import Enum
from typing import Any, TypedDict


class ExtensionType(Enum):
    """Kind of extension an entry describes.

    TOOL is a real variant in memory but has no JSON spelling: a tool entry
    is written without a ``type`` key, and an absent key (or the legacy
    ``null``) reads back as TOOL.
    """

    GAME = "game"
    THEME = "theme"
    TRANSLATION = "translation"
    TOOL = "tool"

    @classmethod
    def from_json(cls, value: Any) -> "ExtensionType":
        """Decode the ``type`` field of a stored entry.

        Args:
            value: Raw value of the ``type`` key (None when absent)

        Returns:
            Matching ExtensionType

        Raises:
            ValueError: If value is not a known type string
        """
        if value is None:
            return cls.TOOL
        if value == cls.TOOL.value:
            # "tool" is never written, so reading it back means bad data
            raise ValueError("'tool' is encoded by omitting the type field")
        return cls(value)

    def to_json(self) -> str | None:
        """Encode for storage. None means "omit the key"."""
        if self is ExtensionType.TOOL:
            return None
        return self.value


# JSON spellings that may appear in a stored ``type`` field
STORED_TYPE_VALUES = frozenset(t.value for t in ExtensionType if t is not ExtensionType.TOOL)


class Description(TypedDict):
    """Short and long description of an extension."""

    short: str
    long: str


class CatalogEntry(TypedDict, total=False):
    """One extension in the manifest.

    Marketplace entries are identified by ``modId``; bundled game entries
    carry a string ``id`` and no ``modId``. A stub keeps only ``modId`` and
    ``fileId``.
    """

    modId: int  # Marketplace item id
    fileId: int  # Currently tracked main file revision
    id: str  # Slug of a bundled entry
    author: str
    uploader: str
    description: Description
    downloads: int
    endorsements: int
    image: str
    name: str
    timestamp: int  # Upload time of the tracked file (epoch seconds)
    tags: list[str]
    version: str
    type: str  # game | theme | translation; absent means tool
    gameName: str  # Only for game entries
    gameId: str  # Site domain of the managed game
    language: str  # Only for translation entries
    dependencies: dict[str, str]
    hide: bool  # Bundled entries that ship with the application
    github: str
    githubRawPath: str


class Manifest(TypedDict):
    """Complete extensions manifest document."""

    last_updated: int  # Epoch milliseconds
    extensions: list[CatalogEntry]


class ExtraInfo(TypedDict, total=False):
    """Entry details the marketplace cannot supply.

    gameName links a game extension to the game it manages; language is a
    language tag such as 'en-US' or 'de' for translations.
    """

    gameName: str
    gameId: str
    language: str
