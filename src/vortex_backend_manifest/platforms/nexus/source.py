"""Nexus Mods marketplace source implementation.

This module provides an EntrySource adapter for the Nexus Mods REST API.
Every extension is published under the "site" pseudo-game, so item and
file lookups always go through ``/games/site``.
"""

import sys
from typing import Any

import requests

from ...constants import NEXUS_API_URL, SITE_DOMAIN
from ...errors import EntryNotFoundError, RateLimitedError, TransientLookupError
from ...sources.base import EntrySource, GameInfo, ItemFile, ItemInfo, UpdateEntry
from ...transformers.base import Transformer

REQUEST_TIMEOUT = 30  # seconds

# Periods accepted by the "updated" endpoint
UPDATE_PERIODS = ("1d", "1w", "1m")

RATE_LIMIT_HEADERS = ("x-rl-hourly-remaining", "x-rl-daily-remaining")


def parse_item_info(payload: dict[str, Any]) -> ItemInfo:
    """Build an ItemInfo from a mod info response."""
    return ItemInfo(
        mod_id=payload["mod_id"],
        name=payload.get("name") or "",
        status=payload.get("status") or "",
        category_id=payload.get("category_id") or 0,
        author=payload.get("author") or "",
        uploaded_by=payload.get("uploaded_by") or "",
        summary=payload.get("summary"),
        description=payload.get("description"),
        picture_url=payload.get("picture_url"),
        mod_unique_downloads=payload.get("mod_unique_downloads") or 0,
        endorsement_count=payload.get("endorsement_count") or 0,
        version=payload.get("version") or "",
    )


def parse_item_file(payload: dict[str, Any]) -> ItemFile:
    """Build an ItemFile from one element of a files response."""
    return ItemFile(
        file_id=payload["file_id"],
        category_id=payload.get("category_id") or 0,
        version=payload.get("version") or "",
        uploaded_timestamp=payload.get("uploaded_timestamp") or 0,
        description=payload.get("description") or "",
        name=payload.get("name") or "",
        file_name=payload.get("file_name") or "",
    )


class NexusSource(EntrySource):
    """Source implementation for the Nexus Mods API.

    The HTTP layer is injectable: anything with a requests-compatible
    ``get`` works, which is how the tests avoid the network. By default
    the module-level ``requests`` functions are used so that concurrent
    lookups do not share a session.

    Example:
        >>> source = NexusSource(api_key="...")
        >>> info = source.get_item_info(598)
        >>> files = source.get_item_files(598)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = NEXUS_API_URL,
        http: Any = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        """Initialize the source.

        Args:
            api_key: Personal or application API key
            base_url: API root, without trailing slash
            http: Object exposing a requests-style ``get`` (defaults to requests)
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests
        self.timeout = timeout

        from .transformer import NexusEntryTransformer
        self._transformer = NexusEntryTransformer()

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Accept": "application/json",
            "Application-Name": "vortex-backend-manifest",
        }

    def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET a JSON document, mapping failures to the lookup taxonomy.

        Raises:
            EntryNotFoundError: On HTTP 404
            RateLimitedError: On HTTP 429
            TransientLookupError: On any other failure
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.http.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientLookupError(f"Request to {path} failed: {e}") from e

        self._log_rate_limits(response)

        if response.status_code == 404:
            raise EntryNotFoundError(f"Not found: {path}")
        if response.status_code == 429:
            raise RateLimitedError(f"Rate limit exceeded while requesting {path}")

        try:
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            raise TransientLookupError(f"Request to {path} failed: {e}") from e
        except ValueError as e:
            raise TransientLookupError(f"Invalid JSON from {path}: {e}") from e

    def _log_rate_limits(self, response: Any) -> None:
        headers = getattr(response, "headers", None) or {}
        remaining = {name: headers.get(name) for name in RATE_LIMIT_HEADERS if headers.get(name) is not None}
        if not remaining:
            return
        # Only report when the quota runs low; every request carries the headers
        try:
            hourly = int(remaining.get("x-rl-hourly-remaining", 1))
        except (TypeError, ValueError):
            return
        if hourly < 10:
            print(f"Warning: Nexus API rate limit running low: {remaining}", file=sys.stderr)

    def get_item_info(self, mod_id: int) -> ItemInfo:
        payload = self._get(f"/games/{SITE_DOMAIN}/mods/{mod_id}.json")
        return parse_item_info(payload)

    def get_item_files(self, mod_id: int) -> list[ItemFile]:
        payload = self._get(f"/games/{SITE_DOMAIN}/mods/{mod_id}/files.json")
        return [parse_item_file(f) for f in payload.get("files", [])]

    def get_recently_updated(self, period: str) -> list[UpdateEntry]:
        """List items updated within a period.

        Args:
            period: One of '1d', '1w', '1m'

        Raises:
            ValueError: If the period is not supported by the API
            EntryLookupError: If the lookup fails
        """
        if period not in UPDATE_PERIODS:
            raise ValueError(f"Unsupported update period: {period}")

        payload = self._get(f"/games/{SITE_DOMAIN}/mods/updated.json", params={"period": period})
        return [
            UpdateEntry(
                mod_id=row["mod_id"],
                latest_file_update=row.get("latest_file_update") or 0,
                latest_mod_activity=row.get("latest_mod_activity") or 0,
            )
            for row in payload
        ]

    def get_game_info(self, domain: str) -> GameInfo:
        payload = self._get(f"/games/{domain}.json")
        return GameInfo(
            id=payload["id"],
            name=payload["name"],
            domain_name=payload.get("domain_name") or domain,
        )

    def get_transformer(self) -> Transformer:
        """Get the transformer for this source."""
        return self._transformer
