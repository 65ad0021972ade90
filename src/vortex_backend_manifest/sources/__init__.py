"""Source adapters for the manifest flows.

This package contains base classes, interfaces and the value types that
source adapters hand to the reconciliation engine. Platform-specific
implementations live in the platforms/ directory.
"""

from .base import (
    DescriptorSource,
    EntrySource,
    GameDescriptor,
    GameInfo,
    ItemData,
    ItemFile,
    ItemInfo,
    ReviewDetails,
    ReviewRequest,
    ReviewRequestSource,
    UpdateEntry,
)

__all__ = [
    "DescriptorSource",
    "EntrySource",
    "GameDescriptor",
    "GameInfo",
    "ItemData",
    "ItemFile",
    "ItemInfo",
    "ReviewDetails",
    "ReviewRequest",
    "ReviewRequestSource",
    "UpdateEntry",
]
