"""Manifest maintenance flows.

This module wires sources, the reconciliation engine, the store and a
notifier into the flows the CLI exposes:

- RefreshPipeline: re-examine every known extension plus recent
  marketplace activity, merge the bundled games, save and report.
- AddExtensionPipeline: add exactly one extension, failing hard on any
  problem.
- ReviewBatchPipeline: add every queued review request, recording
  failures per request.
- sanitize_manifest: drop a hand-picked list of extensions.
"""

import sys
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from .config import DEFAULT_MAX_WORKERS
from .constants import SANITIZE_ARCHIVE_LABEL
from .core.normalizer import validate_entry
from .core.types import CatalogEntry, ExtensionType, ExtraInfo, Manifest
from .errors import EntryLookupError, ManifestError, PreconditionError, ReviewRequestError
from .notify import ConsoleNotifier, Notifier, build_added_blocks, build_refresh_blocks
from .reconciler import (
    Outcome,
    OutcomeKind,
    ReconciliationEngine,
    filter_recent_updates,
    find_entry,
    log,
    merge_bundled,
    select_candidates,
    select_update_period,
)
from .sources.base import DescriptorSource, EntrySource, ItemData, ReviewRequest, ReviewRequestSource
from .store import ManifestStore


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class RefreshResult:
    """Summary of a refresh run."""

    outcomes: list[Outcome]
    bundled_created: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def of_kind(self, kind: OutcomeKind) -> list[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.kind is kind]


@dataclass
class ReviewBatchResult:
    """Summary of a review-batch run."""

    added: list[CatalogEntry] = field(default_factory=list)
    failures: list[tuple[ReviewRequest, str]] = field(default_factory=list)
    duration_ms: int = 0


class RefreshPipeline:
    """Reconciles the whole manifest against the marketplace.

    Lookups for all candidate ids run concurrently; the manifest is only
    mutated afterwards, one id at a time in candidate order, so a run's
    result does not depend on the order in which lookups complete.

    Example:
        >>> pipeline = RefreshPipeline(source, store, bundled=games)
        >>> result = pipeline.run()
        >>> len(result.of_kind(OutcomeKind.UPDATED))
        3
    """

    def __init__(
        self,
        source: EntrySource,
        store: ManifestStore,
        bundled: DescriptorSource | None = None,
        notifier: Notifier | None = None,
        engine: ReconciliationEngine | None = None,
        since: int | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the pipeline.

        Args:
            source: Marketplace lookups
            store: Manifest persistence
            bundled: Bundled game descriptors to merge, if any
            notifier: Digest delivery (stderr when omitted)
            engine: Reconciliation engine (built from source when omitted)
            since: Override of the manifest's last_updated (epoch ms)
            max_workers: Size of the lookup thread pool
            clock: Returns the current time in epoch ms
        """
        self.source = source
        self.store = store
        self.bundled = bundled
        self.notifier = notifier or ConsoleNotifier()
        self.engine = engine or ReconciliationEngine(source)
        self.since = since
        self.max_workers = max_workers
        self.clock = clock

    def collect_candidates(self, manifest: Manifest, started: int) -> list[int]:
        """Recently updated ids plus every known modId.

        Raises:
            PreconditionError: If the recently updated listing is unavailable
        """
        since = self.since if self.since is not None else manifest["last_updated"]
        period = select_update_period(started - since)
        print(f"Update range {period} since {since}", file=sys.stderr)

        try:
            updates = self.source.get_recently_updated(period)
        except EntryLookupError as e:
            self.notifier.send_error(f"Fetching recently updated extensions failed: {e}")
            raise PreconditionError(f"Fetching recently updated extensions failed: {e}") from e

        updated_ids = filter_recent_updates(updates, since)
        candidates = select_candidates(updated_ids, manifest)
        print(
            f"{len(updated_ids)} recently updated, {len(candidates)} candidates in total",
            file=sys.stderr,
        )
        return candidates

    def fetch_all(self, candidates: list[int]) -> dict[int, ItemData]:
        """Fetch every candidate concurrently and wait for all of them."""
        results: dict[int, ItemData] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self.engine.fetch, mod_id): mod_id for mod_id in candidates}
            for future in as_completed(futures):
                mod_id = futures[future]
                try:
                    results[mod_id] = future.result()
                except Exception as e:
                    log(mod_id, f"Fetch failed: {e}", "Warning")
                    results[mod_id] = ItemData(mod_id=mod_id, error=str(e))
        return results

    def run(self) -> RefreshResult:
        """Execute one refresh run.

        Raises:
            PreconditionError: If the manifest cannot be loaded or saved,
                or the recently updated listing is unavailable
        """
        started = self.clock()
        manifest = self.store.load()
        print(f"Last updated: {manifest['last_updated']}", file=sys.stderr)

        candidates = self.collect_candidates(manifest, started)
        fetched = self.fetch_all(candidates)

        outcomes = [self.engine.reconcile_item(manifest, fetched[mod_id]) for mod_id in candidates]
        for outcome in outcomes:
            if outcome.warning:
                self.notifier.send_warning(outcome.warning)

        created: list[str] = []
        if self.bundled is not None:
            print("Processing Games...", file=sys.stderr)
            created = merge_bundled(manifest, self.bundled.list_descriptors(), self.bundled.get_transformer())

        manifest["last_updated"] = started
        self.store.save(manifest)

        duration = self.clock() - started
        self.notifier.send_blocks("summary", build_refresh_blocks(outcomes, duration))
        return RefreshResult(outcomes=outcomes, bundled_created=created, duration_ms=duration)


def prepare_addition(
    engine: ReconciliationEngine,
    manifest: Manifest,
    mod_id: int,
    game_domain: str | None = None,
    language: str | None = None,
) -> Outcome:
    """Build the entry for adding one extension, without touching the manifest.

    Args:
        engine: Reconciliation engine
        manifest: Manifest the entry is meant for
        mod_id: Marketplace id of the extension
        game_domain: Site domain of the game, for game extensions
        language: Language tag, required for translations

    Returns:
        ADDED outcome carrying the new entry, or REJECTED carrying the
        existing entry (left unmodified) when the id is already present

    Raises:
        PreconditionError: If the extension cannot be added
    """
    existing = find_entry(manifest, mod_id)
    if existing is not None:
        log(mod_id, "Manifest already contains this extension", "Error")
        return Outcome(
            mod_id, OutcomeKind.REJECTED, existing,
            reason="Manifest already contains this extension",
        )

    data = engine.fetch(mod_id)
    if data.info is None:
        raise PreconditionError(f"{mod_id}: Fetching mod info failed: {data.error}")

    evaluation = engine.evaluate(data, require_image=False)
    if not evaluation.qualified:
        raise PreconditionError(f"{mod_id}: {evaluation.reason}")

    extra: ExtraInfo = {}
    game = None
    if evaluation.extension_type is ExtensionType.GAME and game_domain:
        try:
            game = engine.source.get_game_info(game_domain)
        except EntryLookupError as e:
            raise PreconditionError(f"{game_domain}: Fetching game info failed: {e}") from e
    elif evaluation.extension_type is ExtensionType.TRANSLATION:
        if not language:
            raise PreconditionError(f"{mod_id}: A language tag is required for translations")
        extra["language"] = language

    entry = engine.build_entry(evaluation, extra=extra, game=game)
    result = validate_entry(entry)
    if not result.valid:
        raise PreconditionError(f"{mod_id}: Entry failed validation: {'; '.join(result.errors)}")

    return Outcome(mod_id, OutcomeKind.ADDED, entry, extension_type=evaluation.extension_type)


class AddExtensionPipeline:
    """Adds exactly one extension to the manifest.

    Unlike a refresh, every problem with the item is fatal: nothing is
    written unless the entry can be added as a whole.
    """

    def __init__(
        self,
        source: EntrySource,
        store: ManifestStore,
        notifier: Notifier | None = None,
        engine: ReconciliationEngine | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.source = source
        self.store = store
        self.notifier = notifier or ConsoleNotifier()
        self.engine = engine or ReconciliationEngine(source)
        self.clock = clock

    def run(
        self,
        mod_id: int | None,
        game_domain: str | None = None,
        language: str | None = None,
    ) -> Outcome:
        """Add one extension.

        Args:
            mod_id: Marketplace id of the extension
            game_domain: Site domain of the game; a game-category item
                without one is added as a tool
            language: Language tag, required for translations

        Returns:
            ADDED outcome, or REJECTED when the id is already present

        Raises:
            PreconditionError: If the id is missing or the item cannot be added
        """
        if mod_id is None:
            raise PreconditionError("No extension mod id given")

        started = self.clock()
        manifest = self.store.load()

        outcome = prepare_addition(self.engine, manifest, mod_id, game_domain, language)
        if outcome.kind is OutcomeKind.REJECTED:
            self.notifier.send_warning(f"{mod_id}: {outcome.reason}")
            return outcome

        manifest["extensions"].append(outcome.entry)  # type: ignore[arg-type]
        manifest["last_updated"] = started
        self.store.save(manifest)
        log(mod_id, "Added to manifest")

        self.notifier.send_blocks("summary", build_added_blocks([outcome.entry], self.clock() - started))  # type: ignore[list-item]
        return outcome


class ReviewBatchPipeline:
    """Adds every queued review request to the manifest.

    Each request is processed like a single add, but failures are
    recorded for the request and the batch moves on. The manifest is
    saved once, and only if something was added.
    """

    def __init__(
        self,
        source: EntrySource,
        reviews: ReviewRequestSource,
        store: ManifestStore,
        notifier: Notifier | None = None,
        engine: ReconciliationEngine | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.source = source
        self.reviews = reviews
        self.store = store
        self.notifier = notifier or ConsoleNotifier()
        self.engine = engine or ReconciliationEngine(source)
        self.clock = clock

    def process_request(self, manifest: Manifest, request: ReviewRequest) -> CatalogEntry:
        """Build and append the entry for one request.

        Raises:
            ManifestError: If the request cannot be added
        """
        details = request.details
        if not details.extension_mod_id:
            raise ManifestError("Missing extension mod ID")

        mod_id = int(details.extension_mod_id)
        outcome = prepare_addition(self.engine, manifest, mod_id, details.game_domain, details.language_tag)
        if outcome.kind is OutcomeKind.REJECTED:
            raise ManifestError(f"Extension already exists in manifest (Mod ID: {mod_id})")

        manifest["extensions"].append(outcome.entry)  # type: ignore[arg-type]
        return outcome.entry  # type: ignore[return-value]

    def run(self) -> ReviewBatchResult:
        """Process every queued request.

        Raises:
            PreconditionError: If the requests or the manifest cannot be read,
                or the manifest cannot be saved
        """
        started = self.clock()
        manifest = self.store.load()

        try:
            requests = self.reviews.list_queued_requests()
        except ReviewRequestError as e:
            raise PreconditionError(f"Reading review requests failed: {e}") from e

        result = ReviewBatchResult()
        if not requests:
            print("No queued extension review requests found.", file=sys.stderr)
            return result

        for request in requests:
            print(f"Processing Issue #{request.issue_number}: {request.title}", file=sys.stderr)
            try:
                entry = self.process_request(manifest, request)
            except ManifestError as e:
                print(f"Warning: Issue #{request.issue_number}: {e}", file=sys.stderr)
                result.failures.append((request, str(e)))
                continue
            except Exception as e:
                print(f"Error: Issue #{request.issue_number}: Unexpected error: {e}", file=sys.stderr)
                result.failures.append((request, f"Unexpected error: {e}"))
                continue
            result.added.append(entry)
            print(f"Added: {entry.get('name')} (Mod ID: {entry.get('modId')})", file=sys.stderr)

        if result.added:
            manifest["last_updated"] = started
            self.store.save(manifest)

        result.duration_ms = self.clock() - started
        failures = [f"<{request.url}|#{request.issue_number}>: {message}" for request, message in result.failures]
        self.notifier.send_blocks(
            "summary",
            build_added_blocks(result.added, result.duration_ms, failures),
        )
        return result


def sanitize_manifest(
    store: ManifestStore,
    mod_ids: list[int],
    clock: Callable[[], int] = now_ms,
) -> list[CatalogEntry]:
    """Remove the entries of the given marketplace ids from the manifest.

    The manifest as it was before is archived under a ``before-sanitize``
    snapshot first. Nothing is written when no entry matches.

    Args:
        store: Manifest persistence
        mod_ids: Marketplace ids to drop
        clock: Returns the current time in epoch ms

    Returns:
        The removed entries

    Raises:
        PreconditionError: If no ids are given or the manifest cannot be
            read or saved
    """
    if not mod_ids:
        raise PreconditionError("No mod IDs to remove given")

    manifest = store.load()
    print(f"Total extensions: {len(manifest['extensions'])}", file=sys.stderr)

    wanted = set(mod_ids)
    removed = [entry for entry in manifest["extensions"] if entry.get("modId") in wanted]
    for entry in removed:
        print(f"  - Mod ID {entry['modId']}: {entry.get('name')}", file=sys.stderr)

    if not removed:
        print("No matching extensions, nothing to remove", file=sys.stderr)
        return removed

    store.archive(manifest, label=SANITIZE_ARCHIVE_LABEL)
    manifest["extensions"] = [entry for entry in manifest["extensions"] if entry.get("modId") not in wanted]
    manifest["last_updated"] = clock()
    store.save(manifest)
    print(f"Removed {len(removed)} extension(s), {len(manifest['extensions'])} left", file=sys.stderr)
    return removed
