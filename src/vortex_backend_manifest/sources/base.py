"""Base abstractions for source adapters.

This module defines the data structures handed over by external
collaborators (the marketplace, the bundled games checkout, the review
request tracker) and the interfaces those adapters implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..transformers.base import Transformer


@dataclass
class ItemInfo:
    """Marketplace metadata for one item.

    Attributes:
        mod_id: Marketplace item id
        name: Display name
        status: Publication status ('published', 'hidden', 'removed', ...)
        category_id: Marketplace category, classified via CATEGORIES
        author: Credited author
        uploaded_by: Account that uploaded the item
        summary: Short description
        description: Long description
        picture_url: Preview image, None if the item has none
        mod_unique_downloads: Unique download count
        endorsement_count: Endorsement count
        version: Item-level version string
    """

    mod_id: int
    name: str = ""
    status: str = "published"
    category_id: int = 0
    author: str = ""
    uploaded_by: str = ""
    summary: str | None = None
    description: str | None = None
    picture_url: str | None = None
    mod_unique_downloads: int = 0
    endorsement_count: int = 0
    version: str = ""


@dataclass
class ItemFile:
    """One downloadable file of a marketplace item."""

    file_id: int
    category_id: int
    version: str = ""
    uploaded_timestamp: int = 0
    description: str = ""
    name: str = ""
    file_name: str = ""


@dataclass
class UpdateEntry:
    """Row of the marketplace's "recently updated" listing (epoch seconds)."""

    mod_id: int
    latest_file_update: int = 0
    latest_mod_activity: int = 0


@dataclass
class GameInfo:
    """Game page information for a site domain."""

    id: int
    name: str
    domain_name: str


@dataclass
class ItemData:
    """Container for everything fetched about one candidate id.

    The fetch phase fills this in on a worker thread; the reconciliation
    phase reads it afterwards on the coordinating thread.

    Attributes:
        mod_id: Candidate id the data belongs to
        info: Item metadata, None if the fetch failed
        files: File list, None if it was not (or could not be) fetched
        error: Message of the lookup failure, if any
    """

    mod_id: int
    info: ItemInfo | None = None
    files: list[ItemFile] | None = None
    error: str | None = None


@dataclass
class GameDescriptor:
    """Descriptor of a bundled game extension (one folder of the checkout).

    Attributes:
        folder: Folder name, e.g. 'game-skyrim'
        path: Folder path
        info: Parsed info.json contents
    """

    folder: str
    path: Path
    info: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        """Explicit id from the descriptor, falling back to the folder name."""
        return self.info.get("id") or self.folder


@dataclass
class ReviewDetails:
    """Fields parsed from a review request's issue form."""

    nexus_username: str | None = None
    extension_mod_id: str | None = None
    extension_url: str | None = None
    game_domain: str | None = None
    game_url: str | None = None
    language_tag: str | None = None
    existing_extension_url: str | None = None


@dataclass
class ReviewRequest:
    """A queued request to add one marketplace item to the manifest."""

    issue_number: int
    title: str
    url: str
    status: str
    project_item_id: str
    labels: list[str] = field(default_factory=list)
    details: ReviewDetails = field(default_factory=ReviewDetails)


class EntrySource(ABC):
    """Abstract base class for marketplace lookups.

    Implementations map their transport failures onto the
    EntryLookupError hierarchy so that callers can treat every source
    the same way.
    """

    @abstractmethod
    def get_item_info(self, mod_id: int) -> ItemInfo:
        """Fetch current metadata for an item.

        Raises:
            EntryNotFoundError: If the item does not exist
            RateLimitedError: If the request was throttled
            TransientLookupError: On any other failure
        """
        pass

    @abstractmethod
    def get_item_files(self, mod_id: int) -> list[ItemFile]:
        """Fetch the downloadable files of an item.

        Raises:
            EntryLookupError: If the lookup fails
        """
        pass

    @abstractmethod
    def get_recently_updated(self, period: str) -> list[UpdateEntry]:
        """List items updated within a period ('1d', '1w' or '1m').

        Raises:
            EntryLookupError: If the lookup fails
        """
        pass

    @abstractmethod
    def get_game_info(self, domain: str) -> GameInfo:
        """Fetch the game page for a site domain.

        Raises:
            EntryLookupError: If the lookup fails
        """
        pass

    @abstractmethod
    def get_transformer(self) -> Transformer:
        """Get the transformer that turns this source's data into entries."""
        pass


class DescriptorSource(ABC):
    """Abstract base class for statically declared (bundled) entries."""

    @abstractmethod
    def list_descriptors(self) -> list[GameDescriptor]:
        """List every descriptor, in a stable order."""
        pass

    @abstractmethod
    def get_transformer(self) -> Transformer:
        """Get the transformer that turns descriptors into entries."""
        pass


class ReviewRequestSource(ABC):
    """Abstract base class for review request trackers."""

    @abstractmethod
    def list_queued_requests(self) -> list[ReviewRequest]:
        """List review requests waiting to be processed.

        Raises:
            ReviewRequestError: If the tracker cannot be read
        """
        pass
