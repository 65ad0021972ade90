"""Bundled game extensions source.

Reads a checkout of the bundled game extensions repository: one folder per
game, named ``game-<slug>``, each holding an ``info.json`` descriptor.
"""

import json
import sys
from pathlib import Path

from ...constants import GAME_EXCLUSIONLIST, GAME_FOLDER_PREFIX
from ...errors import PreconditionError
from ...sources.base import DescriptorSource, GameDescriptor
from ...transformers.base import Transformer

DESCRIPTOR_FILENAME = "info.json"


class BundledGamesSource(DescriptorSource):
    """Source adapter for the bundled game extensions checkout.

    Example:
        >>> source = BundledGamesSource(Path('cloned/vortex-games'))
        >>> for descriptor in source.list_descriptors():
        ...     print(descriptor.id)
    """

    def __init__(self, root: Path, exclusions: list[str] | None = None):
        """Initialize the source.

        Args:
            root: Checkout directory
            exclusions: Folder names to ignore

        Raises:
            PreconditionError: If root doesn't exist or isn't a directory
        """
        self.root = Path(root)
        self.exclusions = list(GAME_EXCLUSIONLIST if exclusions is None else exclusions)

        if not self.root.exists():
            raise PreconditionError(f"Games checkout does not exist: {self.root}")

        if not self.root.is_dir():
            raise PreconditionError(f"Games checkout is not a directory: {self.root}")

        from .transformer import BundledGameTransformer
        self._transformer = BundledGameTransformer()

    def list_folders(self) -> list[Path]:
        """Game folders of the checkout, sorted by name, exclusions removed."""
        return sorted(
            path
            for path in self.root.iterdir()
            if path.is_dir()
            and path.name.startswith(GAME_FOLDER_PREFIX)
            and path.name not in self.exclusions
        )

    def list_descriptors(self) -> list[GameDescriptor]:
        """Read the descriptor of every game folder.

        Folders whose descriptor is missing or unreadable are reported and
        skipped.
        """
        descriptors: list[GameDescriptor] = []
        for folder in self.list_folders():
            descriptor_path = folder / DESCRIPTOR_FILENAME
            try:
                with descriptor_path.open("r", encoding="utf-8") as f:
                    info = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                print(f"Warning: Failed to read {descriptor_path}: {e}", file=sys.stderr)
                continue

            if not isinstance(info, dict):
                print(f"Warning: {descriptor_path} is not a JSON object", file=sys.stderr)
                continue

            descriptors.append(GameDescriptor(folder=folder.name, path=folder, info=info))

        print(f"Found {len(descriptors)} bundled games", file=sys.stderr)
        return descriptors

    def get_transformer(self) -> Transformer:
        """Get the transformer for this source."""
        return self._transformer
