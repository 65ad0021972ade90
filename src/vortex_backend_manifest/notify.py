"""End-of-run digests and their delivery.

Digests are Slack Block Kit payloads. They are delivered by SlackNotifier
when a bot token is configured, and printed by ConsoleNotifier otherwise.
Delivery problems are reported but never fail a run.
"""

import json
import sys
from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

import requests

from .constants import (
    ERROR_EMOJI,
    GAME_EMOJI,
    LIVE_MANIFEST_URL,
    NEXUS_MOD_URL,
    SLACK_API_URL,
    THEME_EMOJI,
    TOOL_EMOJI,
    TRANSLATION_EMOJI,
    UNKNOWN_EMOJI,
    WARNING_EMOJI,
)
from .core.normalizer import get_entry_type
from .core.types import CatalogEntry, ExtensionType
from .reconciler import Outcome, OutcomeKind

Block = dict[str, Any]

REQUEST_TIMEOUT = 10  # seconds

# Slack rejects section texts longer than this
MAX_SECTION_LENGTH = 3000

TYPE_EMOJI = {
    ExtensionType.GAME: GAME_EMOJI,
    ExtensionType.THEME: THEME_EMOJI,
    ExtensionType.TRANSLATION: TRANSLATION_EMOJI,
    ExtensionType.TOOL: TOOL_EMOJI,
}


def format_duration(duration_ms: float) -> str:
    """Format a duration as HH:MM:SS.

    Example:
        >>> format_duration(3_723_000)
        '01:02:03'
    """
    total_seconds = int(duration_ms // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def emoji_for(extension_type: ExtensionType | None) -> str:
    """Emoji shown next to an extension of the given type."""
    if extension_type is None:
        return UNKNOWN_EMOJI
    return TYPE_EMOJI.get(extension_type, UNKNOWN_EMOJI)


def entry_type_or_none(entry: CatalogEntry) -> ExtensionType | None:
    try:
        return get_entry_type(entry)
    except ValueError:
        return None


def format_entry_line(entry: CatalogEntry, extension_type: ExtensionType | None = None) -> str:
    """One digest line: emoji, linked name and version."""
    if extension_type is None:
        extension_type = entry_type_or_none(entry)
    url = NEXUS_MOD_URL.format(mod_id=entry.get("modId"))
    return f"{emoji_for(extension_type)} <{url}|{entry.get('name', '')}> - {entry.get('version', '')}"


def section(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def context(text: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def list_sections(lines: list[str]) -> list[Block]:
    """Sections holding the lines, split to stay under the Slack limit."""
    blocks: list[Block] = []
    current: list[str] = []
    length = 0
    for line in lines:
        if current and length + len(line) + 1 > MAX_SECTION_LENGTH:
            blocks.append(section("\n".join(current)))
            current, length = [], 0
        current.append(line)
        length += len(line) + 1
    if current:
        blocks.append(section("\n".join(current)))
    return blocks


def _lines_for(outcomes: Iterable[Outcome], kind: OutcomeKind) -> list[str]:
    return [
        format_entry_line(outcome.entry, outcome.extension_type)
        for outcome in outcomes
        if outcome.kind is kind and outcome.entry is not None
    ]


def build_refresh_blocks(outcomes: list[Outcome], duration_ms: float) -> list[Block]:
    """Digest of a refresh run.

    Args:
        outcomes: Outcomes of every candidate id
        duration_ms: Run duration

    Returns:
        Slack blocks
    """
    added = _lines_for(outcomes, OutcomeKind.ADDED)
    updated = _lines_for(outcomes, OutcomeKind.UPDATED)

    blocks = [section(f"Extensions <{LIVE_MANIFEST_URL}|manifest file> has been updated")]

    if added:
        blocks.append(section("*Extensions that have been added:*"))
        blocks.extend(list_sections(added))

    if updated:
        blocks.append(section("*Extensions that have been updated:*"))
        blocks.extend(list_sections(updated))

    if not added and not updated:
        blocks.append(section("No extensions have been added or updated"))

    counts = {kind: sum(1 for o in outcomes if o.kind is kind) for kind in OutcomeKind}
    if counts[OutcomeKind.REMOVED] or counts[OutcomeKind.REJECTED] or counts[OutcomeKind.FAILED]:
        blocks.append(context(
            f"Removed: {counts[OutcomeKind.REMOVED]} | "
            f"Rejected: {counts[OutcomeKind.REJECTED]} | "
            f"Failed: {counts[OutcomeKind.FAILED]}"
        ))

    warnings = [f"{WARNING_EMOJI} {o.warning}" for o in outcomes if o.warning]
    if warnings:
        blocks.extend(list_sections(warnings))

    blocks.append(context(f"Completed in {format_duration(duration_ms)}"))
    return blocks


def build_added_blocks(
    entries: list[CatalogEntry],
    duration_ms: float,
    failures: list[str] | None = None,
) -> list[Block]:
    """Digest of an add or review-batch run.

    Args:
        entries: Entries appended to the manifest
        duration_ms: Run duration
        failures: One message per request that could not be added

    Returns:
        Slack blocks
    """
    blocks = [section(f"<{LIVE_MANIFEST_URL}|Extensions manifest file> has been updated")]

    if entries:
        blocks.append(section("*Added extensions:*"))
        blocks.extend(list_sections([format_entry_line(entry) for entry in entries]))
    else:
        blocks.append(section("No extensions have been added"))

    if failures:
        blocks.append(section("*Requests that could not be processed:*"))
        blocks.extend(list_sections([f"{ERROR_EMOJI} {message}" for message in failures]))

    blocks.append(context(f"Completed in {format_duration(duration_ms)}"))
    return blocks


@runtime_checkable
class Notifier(Protocol):
    """Protocol for digest delivery channels."""

    def send_info(self, text: str) -> None:
        ...

    def send_warning(self, text: str) -> None:
        ...

    def send_error(self, text: str) -> None:
        ...

    def send_blocks(self, text: str, blocks: list[Block]) -> None:
        ...


class ConsoleNotifier:
    """Prints notifications to stderr."""

    def send_info(self, text: str) -> None:
        print(f"Notification: {text}", file=sys.stderr)

    def send_warning(self, text: str) -> None:
        print(f"Warning: {text}", file=sys.stderr)

    def send_error(self, text: str) -> None:
        print(f"Error: {text}", file=sys.stderr)

    def send_blocks(self, text: str, blocks: list[Block]) -> None:
        print(f"Notification ({text}):", file=sys.stderr)
        print(json.dumps(blocks, indent=2, ensure_ascii=False), file=sys.stderr)


class SlackNotifier:
    """Posts notifications with the chat.postMessage Web API method.

    Example:
        >>> notifier = SlackNotifier(token="xoxb-...", channel="C0GM4G264")
        >>> notifier.send_warning("598: Mod has no main file")
    """

    def __init__(
        self,
        token: str,
        channel: str,
        url: str = SLACK_API_URL,
        http: Any = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.token = token
        self.channel = channel
        self.url = url
        self.http = http if http is not None else requests
        self.timeout = timeout

    def send_info(self, text: str) -> None:
        self._post(text, [section(text)])

    def send_warning(self, text: str) -> None:
        self._post(text, [section(f"{WARNING_EMOJI} {text}")])

    def send_error(self, text: str) -> None:
        self._post(text, [section(f"{ERROR_EMOJI} {text}")])

    def send_blocks(self, text: str, blocks: list[Block]) -> None:
        self._post(text, blocks)

    def _post(self, text: str, blocks: list[Block]) -> bool:
        """Post one message.

        Returns:
            True if Slack accepted the message
        """
        try:
            response = self.http.post(
                self.url,
                json={
                    "channel": self.channel,
                    "text": text,
                    "blocks": blocks,
                    "unfurl_links": False,
                },
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            print(f"Warning: Failed to send Slack message: {e}", file=sys.stderr)
            return False

        if not payload.get("ok"):
            print(f"Warning: Slack rejected message: {payload.get('error', 'unknown error')}", file=sys.stderr)
            return False
        return True


def create_notifier(token: str, channel: str, dry_run: bool = False) -> Notifier:
    """Pick the delivery channel for the current configuration."""
    if dry_run or not token:
        if not dry_run:
            print("Warning: No SLACK_BOT_TOKEN found in env, notifications go to stderr", file=sys.stderr)
        return ConsoleNotifier()
    return SlackNotifier(token, channel)
