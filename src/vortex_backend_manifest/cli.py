"""Command-line interface for manifest maintenance.

Exit codes: 0 on success (including runs with nothing to do and refresh
runs where individual items failed), 1 on any fatal precondition failure
or when a single-item request is rejected.
"""

import argparse
import dataclasses
import sys
from pathlib import Path

from .config import Settings
from .core.normalizer import is_stub, validate_entry
from .core.validator import validate_manifest_with_error_details
from .errors import PreconditionError, RejectedError
from .notify import create_notifier
from .motm import add_motm, motm_store, parse_motm_date
from .pipeline import AddExtensionPipeline, RefreshPipeline, ReviewBatchPipeline, sanitize_manifest
from .reconciler import OutcomeKind, ReconciliationEngine
from .registry import SourceRegistry
from .sources.base import EntrySource
from .spotlights import add_spotlight, spotlight_store
from .store import ManifestStore


def build_store(settings: Settings) -> ManifestStore:
    return ManifestStore(settings.manifest_dir, settings.archive_dir, dry_run=settings.dry_run)


def build_engine(source: EntrySource, settings: Settings) -> ReconciliationEngine:
    return ReconciliationEngine(source, window=settings.version_window)


def run_refresh(args: argparse.Namespace, settings: Settings) -> int:
    source = SourceRegistry.create_source('nexus', api_key=settings.require_nexus_key())
    bundled = None
    if not args.skip_games:
        bundled = SourceRegistry.create_source('bundled', root=settings.games_dir)

    pipeline = RefreshPipeline(
        source,
        build_store(settings),
        bundled=bundled,
        notifier=create_notifier(settings.slack_bot_token, settings.slack_channel, settings.dry_run),
        engine=build_engine(source, settings),
        since=args.since if args.since is not None else settings.update_check_since,
        max_workers=settings.max_workers,
    )

    result = pipeline.run()
    counts = ", ".join(
        f"{kind.value}: {len(result.of_kind(kind))}" for kind in OutcomeKind if result.of_kind(kind)
    )
    print(f"Finished processing ({counts or 'no candidates'})", file=sys.stderr)
    return 0


def run_add(args: argparse.Namespace, settings: Settings) -> int:
    source = SourceRegistry.create_source('nexus', api_key=settings.require_nexus_key())
    pipeline = AddExtensionPipeline(
        source,
        build_store(settings),
        notifier=create_notifier(settings.slack_bot_token, settings.slack_channel, settings.dry_run),
        engine=build_engine(source, settings),
    )

    outcome = pipeline.run(args.mod_id, game_domain=args.game_domain, language=args.language)
    if outcome.kind is OutcomeKind.REJECTED:
        print(f"Error: {outcome.mod_id}: {outcome.reason}", file=sys.stderr)
        return 1
    return 0


def run_process_reviews(args: argparse.Namespace, settings: Settings) -> int:
    source = SourceRegistry.create_source('nexus', api_key=settings.require_nexus_key())
    reviews = SourceRegistry.create_source(
        'github',
        token=settings.require_github_token(),
        project_id=settings.github_project_id,
    )
    pipeline = ReviewBatchPipeline(
        source,
        reviews,
        build_store(settings),
        notifier=create_notifier(settings.slack_bot_token, settings.slack_channel, settings.dry_run),
        engine=build_engine(source, settings),
    )

    result = pipeline.run()
    print(
        f"Added {len(result.added)} extension(s), {len(result.failures)} request(s) failed",
        file=sys.stderr,
    )
    return 0


def run_validate(args: argparse.Namespace, settings: Settings) -> int:
    store = build_store(settings)
    if args.path:
        path = Path(args.path)
        store = ManifestStore(path.parent, settings.archive_dir, filename=path.name, dry_run=True)

    # Load without the schema check so every problem can be listed
    store.validator = None
    manifest = store.load()

    print("Validating manifest against schema...", file=sys.stderr)
    is_valid, error_msg = validate_manifest_with_error_details(manifest)
    if not is_valid:
        print("Error: Manifest validation failed:", file=sys.stderr)
        print(error_msg, file=sys.stderr)

    if not isinstance(manifest, dict):
        return 1

    invalid_entries = 0
    for entry in manifest.get("extensions") or []:
        if not isinstance(entry, dict):
            continue
        if entry.get("modId") is None or is_stub(entry):
            continue
        result = validate_entry(entry)
        if not result.valid:
            invalid_entries += 1
            print(f"Error: {entry['modId']}: {'; '.join(result.errors)}", file=sys.stderr)

    if not is_valid or invalid_entries:
        return 1

    print("Validation successful!", file=sys.stderr)
    return 0


def run_add_spotlight(args: argparse.Namespace, settings: Settings) -> int:
    entry = add_spotlight(spotlight_store(build_store(settings)), args.link)
    print(f"Added spotlight {entry['videoid']} ({entry['id']})", file=sys.stderr)
    return 0


def run_add_motm(args: argparse.Namespace, settings: Settings) -> int:
    link = args.link or settings.motm_link
    date = parse_motm_date(args.date if args.date is not None else settings.motm_date)
    entry = add_motm(motm_store(build_store(settings)), link, date_ms=date)
    print(f"Added mods of the month entry {entry['id']}", file=sys.stderr)
    return 0


def run_sanitize(args: argparse.Namespace, settings: Settings) -> int:
    removed = sanitize_manifest(build_store(settings), args.mod_ids)
    missing = sorted(set(args.mod_ids) - {entry["modId"] for entry in removed})
    if missing:
        print(f"Warning: Not in the manifest: {', '.join(map(str, missing))}", file=sys.stderr)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vortex-manifest",
        description="Maintain the extensions manifest and related JSON files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scheduled refresh of every known extension
  vortex-manifest refresh

  # Add a game extension
  vortex-manifest add --mod-id 598 --game-domain back4blood

  # See what a refresh would do without writing anything
  vortex-manifest --dry-run refresh

  # Drop extensions that failed review
  vortex-manifest sanitize --mod-id 101 102
        """,
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate and report, but write nothing")
    parser.add_argument("--manifest-dir", help="Directory holding the manifest files")
    parser.add_argument("--archive-dir", help="Directory receiving archive snapshots")

    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh = subparsers.add_parser("refresh", help="Reconcile the manifest with the marketplace")
    refresh.add_argument("--since", type=int, help="Override last_updated (epoch milliseconds)")
    refresh.add_argument("--games-dir", help="Checkout of the bundled game extensions")
    refresh.add_argument("--skip-games", action="store_true", help="Do not merge bundled games")
    refresh.set_defaults(handler=run_refresh)

    add = subparsers.add_parser("add", help="Add one extension to the manifest")
    add.add_argument("--mod-id", type=int, help="Marketplace id of the extension")
    add.add_argument("--game-domain", help="Site domain of the game (game extensions)")
    add.add_argument("--language", help="Language tag (translations)")
    add.set_defaults(handler=run_add)

    reviews = subparsers.add_parser("process-reviews", help="Add every queued review request")
    reviews.set_defaults(handler=run_process_reviews)

    validate = subparsers.add_parser("validate", help="Validate the manifest")
    validate.add_argument("--path", help="Manifest file to validate instead of the configured one")
    validate.set_defaults(handler=run_validate)

    spotlight = subparsers.add_parser("add-spotlight", help="Add a video to the mod spotlights")
    spotlight.add_argument("--link", required=True, help="YouTube watch URL")
    spotlight.set_defaults(handler=run_add_spotlight)

    motm = subparsers.add_parser("add-motm", help="Add a video to the mods of the month")
    motm.add_argument("--link", help="Video link (defaults to EXT_MOTM_LINK)")
    motm.add_argument("--date", help="Entry date in epoch milliseconds (defaults to EXT_MOTM_DATE or now)")
    motm.set_defaults(handler=run_add_motm)

    sanitize = subparsers.add_parser("sanitize", help="Remove extensions from the manifest")
    sanitize.add_argument(
        "--mod-id", dest="mod_ids", type=int, nargs="+", required=True,
        help="Marketplace ids of the extensions to remove",
    )
    sanitize.set_defaults(handler=run_sanitize)

    return parser


def apply_overrides(args: argparse.Namespace, settings: Settings) -> Settings:
    """Apply command-line flags on top of environment settings."""
    overrides: dict = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.manifest_dir:
        overrides["manifest_dir"] = Path(args.manifest_dir)
    if args.archive_dir:
        overrides["archive_dir"] = Path(args.archive_dir)
    if getattr(args, "games_dir", None):
        overrides["games_dir"] = Path(args.games_dir)
    return dataclasses.replace(settings, **overrides) if overrides else settings


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the manifest tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = apply_overrides(args, Settings.from_env())
        if settings.dry_run:
            print("Dry run: nothing will be written or sent", file=sys.stderr)
        exit_code = args.handler(args, settings)
    except PreconditionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except RejectedError as e:
        print(f"Error: {e.reason}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
