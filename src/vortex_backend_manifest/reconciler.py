"""Per-item reconciliation of the manifest against marketplace data.

The engine works in two phases. ``fetch`` gathers everything known about
one candidate id and is safe to run on worker threads; it never touches
the manifest. ``reconcile_item`` then applies the decision for that id to
the manifest and must be called from a single coordinating thread.
"""

import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from .constants import CATEGORIES, MAIN_FILE_CATEGORY, ONE_DAY, VERSION_WINDOW
from .core.dependencies import is_compatible
from .core.normalizer import FIELD_ORDER, get_entry_type, is_stub, normalize_entry, stub_entry, validate_entry
from .core.types import CatalogEntry, ExtensionType, ExtraInfo, Manifest
from .errors import EntryLookupError, RejectedError
from .sources.base import EntrySource, GameDescriptor, GameInfo, ItemData, ItemFile, ItemInfo, UpdateEntry
from .transformers.base import Transformer

# A veto hook inspects the existing entry (None if absent), the fresh
# metadata and the selected file, and raises RejectedError to refuse it.
Veto = Callable[[CatalogEntry | None, ItemInfo, ItemFile], None]


class OutcomeKind(Enum):
    """What happened to one candidate id during a run."""

    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    REJECTED = "rejected"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    # Lookup failed or metadata unusable; the entry is left as it was
    FAILED = "failed"


@dataclass
class Outcome:
    """Result of reconciling one candidate id.

    Attributes:
        mod_id: Candidate id
        kind: Classification of the result
        entry: Manifest entry after the change (None when none exists)
        reason: Human-readable explanation
        warning: Message that should reach the notification channel
        extension_type: Classification of the item, when known
    """

    mod_id: int
    kind: OutcomeKind
    entry: CatalogEntry | None = None
    reason: str | None = None
    warning: str | None = None
    extension_type: ExtensionType | None = None


@dataclass
class Evaluation:
    """Decision for one candidate before it is applied to a manifest.

    ``kind`` is None when the item qualifies for inclusion; ``latest``
    and ``extension_type`` are then set.
    """

    mod_id: int
    info: ItemInfo | None = None
    kind: OutcomeKind | None = None
    reason: str | None = None
    warning: str | None = None
    extension_type: ExtensionType | None = None
    latest: ItemFile | None = None

    @property
    def qualified(self) -> bool:
        return self.kind is None


def log(mod_id: int | str, message: str, level: str | None = None) -> None:
    """Print a per-item progress line to stderr."""
    prefix = f"{level}: " if level else ""
    print(f"{prefix}{mod_id}: {message}", file=sys.stderr)


def find_entry(manifest: Manifest, mod_id: int) -> CatalogEntry | None:
    """Find the marketplace entry with the given modId."""
    for entry in manifest["extensions"]:
        if entry.get("modId") == mod_id:
            return entry
    return None


def select_main_files(files: Iterable[ItemFile]) -> list[ItemFile]:
    """Keep only files in the marketplace's "main" file category."""
    return [f for f in files if f.category_id == MAIN_FILE_CATEGORY]


def filter_compatible_files(files: Iterable[ItemFile], window: tuple[str, str]) -> list[ItemFile]:
    """Keep files whose stated host requirement accepts either window bound."""
    return [f for f in files if is_compatible(f.description, window)]


def select_latest_file(files: Iterable[ItemFile]) -> ItemFile:
    """Pick the file with the highest file id.

    Raises:
        ValueError: If no files are given
    """
    return max(files, key=lambda f: f.file_id)


def select_update_period(elapsed_ms: int) -> str:
    """Pick the "recently updated" window covering the elapsed time.

    Args:
        elapsed_ms: Milliseconds since the last reconciliation

    Returns:
        '1d', '1w' or '1m'
    """
    if elapsed_ms > ONE_DAY * 30:
        print(
            "Warning: Last update was more than one month ago, list may be incomplete!",
            file=sys.stderr,
        )

    if elapsed_ms <= ONE_DAY:
        return "1d"
    if elapsed_ms <= ONE_DAY * 7:
        return "1w"
    return "1m"


def filter_recent_updates(updates: Iterable[UpdateEntry], since_ms: int) -> list[int]:
    """Ids of items with file or item activity after a timestamp.

    Args:
        updates: Rows of the "recently updated" listing (epoch seconds)
        since_ms: Last reconciliation time (epoch milliseconds)
    """
    since = since_ms / 1000
    return [
        row.mod_id
        for row in updates
        if row.latest_file_update > since or row.latest_mod_activity > since
    ]


def select_candidates(updated_ids: Iterable[int], manifest: Manifest) -> list[int]:
    """Ordered union of recently updated ids and every known modId."""
    known = (
        entry["modId"] for entry in manifest["extensions"] if entry.get("modId") is not None
    )
    return list(dict.fromkeys([*updated_ids, *known]))


def resolve_type(extension_type: ExtensionType, extra: ExtraInfo) -> ExtensionType:
    """Final type of an entry given the extra info available for it.

    The marketplace files games and tools under the same category; an
    item of that category is only recorded as a game when a gameName
    is known for it.
    """
    if extension_type is ExtensionType.GAME and not extra.get("gameName"):
        return ExtensionType.TOOL
    return extension_type


def extra_info_from_entry(entry: CatalogEntry) -> ExtraInfo:
    """Extra info previously recorded on an entry."""
    return {key: entry[key] for key in ("gameName", "gameId", "language") if entry.get(key)}  # type: ignore[return-value,misc]


def rewrite_entry(entry: CatalogEntry, fresh: CatalogEntry) -> None:
    """Replace an entry's known fields in place with freshly built ones.

    Fields outside the canonical set are kept, after the canonical ones.
    The previous image is kept when the fresh entry has none.
    """
    if "image" not in fresh and entry.get("image") is not None:
        fresh = normalize_entry({**fresh, "image": entry["image"]})  # type: ignore[typeddict-item]

    preserved = {key: value for key, value in entry.items() if key not in FIELD_ORDER}
    entry.clear()
    entry.update(fresh)
    entry.update(preserved)  # type: ignore[typeddict-item]


class ReconciliationEngine:
    """Decides and applies add/update/remove outcomes per candidate id.

    Example:
        >>> engine = ReconciliationEngine(source)
        >>> data = engine.fetch(598)
        >>> outcome = engine.reconcile_item(manifest, data)
        >>> outcome.kind
        <OutcomeKind.ADDED: 'added'>
    """

    def __init__(
        self,
        source: EntrySource,
        categories: dict[int, ExtensionType] | None = None,
        window: tuple[str, str] = VERSION_WINDOW,
        veto: Veto | None = None,
    ):
        """Initialize the engine.

        Args:
            source: Marketplace lookups
            categories: Category id -> extension type table
            window: (oldest, newest) supported host versions
            veto: Optional business-rule hook raising RejectedError
        """
        self.source = source
        self.categories = categories if categories is not None else CATEGORIES
        self.window = window
        self.veto = veto

    @property
    def transformer(self) -> Transformer:
        return self.source.get_transformer()

    def fetch(self, mod_id: int) -> ItemData:
        """Gather metadata and, when they will be needed, the files of an item.

        Lookup failures are captured on the result instead of raised.
        """
        log(mod_id, "Fetching info")
        try:
            info = self.source.get_item_info(mod_id)
        except EntryLookupError as e:
            log(mod_id, f"Fetch failed: {e}", "Warning")
            return ItemData(mod_id=mod_id, error=str(e))

        if info.status != "published" or info.category_id not in self.categories:
            return ItemData(mod_id=mod_id, info=info)

        try:
            files = self.source.get_item_files(mod_id)
        except EntryLookupError as e:
            log(mod_id, f"Fetching files failed: {e}", "Warning")
            return ItemData(mod_id=mod_id, info=info, error=str(e))

        return ItemData(mod_id=mod_id, info=info, files=files)

    def evaluate(self, data: ItemData, require_image: bool = True) -> Evaluation:
        """Classify fetched data without touching any manifest.

        Args:
            data: Result of fetch()
            require_image: Treat items without a preview image as unusable

        Returns:
            Evaluation; qualified ones carry the type and latest file
        """
        mod_id = data.mod_id
        info = data.info

        if info is None:
            return Evaluation(mod_id, kind=OutcomeKind.FAILED, reason=data.error or "Fetch failed")

        if require_image and info.picture_url is None:
            return Evaluation(mod_id, info, kind=OutcomeKind.FAILED, reason="Missing picture_url")

        if info.status != "published":
            return Evaluation(mod_id, info, kind=OutcomeKind.REMOVED, reason=f"Mod removed (status: {info.status})")

        extension_type = self.categories.get(info.category_id)
        if extension_type is None:
            return Evaluation(
                mod_id, info, kind=OutcomeKind.SKIPPED,
                reason=f"Not a game/theme/translation (category {info.category_id})",
            )

        if data.files is None:
            return Evaluation(
                mod_id, info, kind=OutcomeKind.FAILED,
                reason=data.error or "File list unavailable", extension_type=extension_type,
            )

        main_files = select_main_files(data.files)
        if not main_files:
            return Evaluation(
                mod_id, info, kind=OutcomeKind.REMOVED, reason="Mod has no main file",
                warning=f"{mod_id}: Mod has no main file", extension_type=extension_type,
            )
        if len(main_files) > 1:
            log(mod_id, "Multiple main files, only the latest will be included", "Warning")

        compatible = filter_compatible_files(main_files, self.window)
        if not compatible:
            return Evaluation(
                mod_id, info, kind=OutcomeKind.REMOVED,
                reason="All files filtered because of version requirement",
                extension_type=extension_type,
            )

        latest = select_latest_file(compatible)
        return Evaluation(mod_id, info, extension_type=extension_type, latest=latest)

    def build_entry(
        self,
        evaluation: Evaluation,
        extra: ExtraInfo | None = None,
        dependencies: dict[str, str] | None = None,
        game: GameInfo | None = None,
    ) -> CatalogEntry:
        """Build the full entry for a qualified evaluation.

        Args:
            evaluation: Qualified evaluation
            extra: gameName/gameId/language to record
            dependencies: Dependencies already recorded for the item
            game: Resolved game page, for game extensions
        """
        extra = extra or {}
        known = {**extra, "gameName": game.name} if game is not None else extra
        extension_type = resolve_type(evaluation.extension_type, known)  # type: ignore[arg-type]
        return self.transformer.transform(
            evaluation.info,
            file=evaluation.latest,
            extension_type=extension_type,
            extra=extra,
            dependencies=dependencies,
            game=game,
        )

    def reconcile_item(self, manifest: Manifest, data: ItemData) -> Outcome:
        """Apply the decision for one candidate id to the manifest.

        Never raises for per-item problems: lookup failures, removals,
        vetoes and invalid entries all end up as an Outcome.
        """
        mod_id = data.mod_id
        existing = find_entry(manifest, mod_id)
        evaluation = self.evaluate(data)

        if evaluation.kind is OutcomeKind.FAILED:
            log(mod_id, evaluation.reason or "Fetch failed", "Warning")
            return Outcome(mod_id, OutcomeKind.FAILED, existing, evaluation.reason, evaluation.warning, evaluation.extension_type)

        if evaluation.kind is OutcomeKind.SKIPPED:
            log(mod_id, evaluation.reason or "Skipped")
            return Outcome(mod_id, OutcomeKind.SKIPPED, existing, evaluation.reason)

        if evaluation.kind is OutcomeKind.REMOVED:
            log(mod_id, evaluation.reason or "Removed", "Warning")
            if existing is not None:
                stub_entry(existing)
            return Outcome(mod_id, OutcomeKind.REMOVED, existing, evaluation.reason, evaluation.warning, evaluation.extension_type)

        latest: ItemFile = evaluation.latest  # type: ignore[assignment]
        log(mod_id, f"Latest file {latest.file_id}")

        if self.veto is not None:
            try:
                self.veto(existing, evaluation.info, latest)
            except RejectedError as e:
                return self._reject(manifest, existing, mod_id, latest, e.reason, evaluation.extension_type)

        if existing is None:
            entry = self.build_entry(evaluation)
            result = validate_entry(entry)
            if not result.valid:
                reason = "; ".join(result.errors)
                log(mod_id, f"New extension failed validation: {reason}", "Warning")
                return Outcome(mod_id, OutcomeKind.SKIPPED, None, reason, f"{mod_id}: needs adding manually ({reason})", evaluation.extension_type)
            manifest["extensions"].append(entry)
            log(mod_id, "New extension")
            return Outcome(mod_id, OutcomeKind.ADDED, entry, extension_type=get_entry_type(entry))

        changed = existing.get("fileId") != latest.file_id
        if not changed and is_stub(existing):
            return Outcome(mod_id, OutcomeKind.UNCHANGED, existing, extension_type=evaluation.extension_type)

        fresh = self.build_entry(
            evaluation,
            extra=extra_info_from_entry(existing),
            dependencies=existing.get("dependencies"),
        )
        result = validate_entry(fresh)
        if not result.valid:
            reason = "; ".join(result.errors)
            log(mod_id, f"Refreshed entry failed validation: {reason}", "Warning")
            return Outcome(mod_id, OutcomeKind.SKIPPED, existing, reason, f"{mod_id}: {reason}", evaluation.extension_type)

        if changed:
            log(mod_id, f"File updated {existing.get('fileId')} -> {latest.file_id}")
        rewrite_entry(existing, fresh)
        kind = OutcomeKind.UPDATED if changed else OutcomeKind.UNCHANGED
        return Outcome(mod_id, kind, existing, extension_type=get_entry_type(existing))

    def _reject(
        self,
        manifest: Manifest,
        existing: CatalogEntry | None,
        mod_id: int,
        latest: ItemFile,
        reason: str,
        extension_type: ExtensionType | None,
    ) -> Outcome:
        if existing is None:
            existing = {"modId": mod_id, "fileId": latest.file_id}
            manifest["extensions"].append(existing)
        else:
            existing["fileId"] = latest.file_id
        log(mod_id, f"Rejected ({reason}), recorded file {latest.file_id}")
        return Outcome(mod_id, OutcomeKind.REJECTED, existing, reason, extension_type=extension_type)


def merge_bundled(
    manifest: Manifest,
    descriptors: Iterable[GameDescriptor],
    transformer: Transformer,
) -> list[str]:
    """Find-or-create bundled entries by id and refresh their fields.

    Bundled entries are never stubbed or removed.

    Args:
        manifest: Manifest to update in place
        descriptors: Bundled game descriptors
        transformer: Builds the entry fields for a descriptor; called with
            ``create=True`` for entries that do not exist yet

    Returns:
        Ids of the entries that were created
    """
    created: list[str] = []
    for descriptor in descriptors:
        existing = next(
            (
                entry
                for entry in manifest["extensions"]
                if entry.get("modId") is None and entry.get("id") == descriptor.id
            ),
            None,
        )
        if existing is None:
            existing = transformer.transform(descriptor, create=True)
            manifest["extensions"].append(existing)
            created.append(descriptor.id)
        else:
            existing.update(transformer.transform(descriptor, create=False))
        print(f"Completed {descriptor.folder} ({descriptor.info.get('version')})", file=sys.stderr)
    return created
