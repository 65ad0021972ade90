"""Base transformer class for converting source data to catalog entries.

This module defines the base interface for transformers that convert
source-specific data into extensions manifest entries.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..core.types import CatalogEntry


class Transformer(ABC):
    """Abstract base class for data transformers.

    Transformers convert source-specific data into catalog entries
    that conform to the manifest JSON schema.
    """

    @abstractmethod
    def transform(self, data: Any, **kwargs) -> "CatalogEntry":
        """Transform source data into a catalog entry.

        Args:
            data: Raw data from the source
            **kwargs: Additional transformation parameters

        Returns:
            Catalog entry dictionary

        Raises:
            Exception: If transformation fails
        """
        pass
