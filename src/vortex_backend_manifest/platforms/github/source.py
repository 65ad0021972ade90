"""GitHub project board source for extension review requests.

Review requests are issues on a ProjectV2 board. An issue is queued for
processing when it carries an "extension..." label and its Status column
reads "Queued". The issue body follows an issue form whose answers are
parsed by extract_review_details().
"""

import re
import sys
from typing import Any

import requests

from ...constants import EXTENSION_LABEL, GITHUB_GRAPHQL_URL, QUEUED_STATUS
from ...errors import ReviewRequestError
from ...sources.base import ReviewDetails, ReviewRequest, ReviewRequestSource

REQUEST_TIMEOUT = 30  # seconds
PAGE_SIZE = 100

USERNAME_REGEX = re.compile(r"###\s*Nexus\s+Username\s*\n+([^\n#]+)", re.IGNORECASE)
EXTENSION_URL_REGEX = re.compile(r"###\s*Extension\s+URL\s*\n+(https?://[^\s]+)", re.IGNORECASE)
GAME_URL_REGEX = re.compile(r"###\s*Game\s+URL\s*\n+(https?://[^\s]+)", re.IGNORECASE)
LANGUAGE_REGEX = re.compile(r"###\s*Language(?:\s+Code)?\s*\n+([^\n#]+)", re.IGNORECASE)
EXISTING_EXTENSION_REGEX = re.compile(r"###\s*Existing\s+Extension\s+URL\s*\n+([^\n#]+)", re.IGNORECASE)

# Issue form placeholder for an unanswered optional field
NO_RESPONSE = "_no response_"

PROJECT_ITEMS_QUERY = """
query ($projectId: ID!, $cursor: String) {
  node(id: $projectId) {
    ... on ProjectV2 {
      items(first: %d, after: $cursor) {
        nodes {
          id
          fieldValues(first: 20) {
            nodes {
              __typename
              ... on ProjectV2ItemFieldSingleSelectValue {
                field {
                  ... on ProjectV2SingleSelectField {
                    name
                  }
                }
                name
              }
            }
          }
          content {
            __typename
            ... on Issue {
              number
              title
              url
              body
              labels(first: 10) {
                nodes {
                  name
                }
              }
            }
          }
        }
        pageInfo {
          hasNextPage
          endCursor
        }
      }
    }
  }
}
""" % PAGE_SIZE


def _last_segment(url: str) -> str:
    return url.rstrip("/").split("/")[-1]


def extract_review_details(body: str | None) -> ReviewDetails:
    """Parse the issue form answers of a review request.

    Args:
        body: Markdown body of the issue

    Returns:
        ReviewDetails; fields stay None when the answer is missing

    Example:
        >>> details = extract_review_details(
        ...     "### Extension URL\\n\\nhttps://www.nexusmods.com/site/mods/598\\n"
        ... )
        >>> details.extension_mod_id
        '598'
    """
    details = ReviewDetails()
    if not body:
        return details

    match = USERNAME_REGEX.search(body)
    if match:
        details.nexus_username = match.group(1).strip()

    match = EXTENSION_URL_REGEX.search(body)
    if match:
        details.extension_url = match.group(1).strip()
        segment = _last_segment(details.extension_url)
        if segment.isdigit():
            details.extension_mod_id = segment

    match = GAME_URL_REGEX.search(body)
    if match:
        details.game_url = match.group(1).strip()
        segment = _last_segment(details.game_url)
        if segment:
            details.game_domain = segment

    match = LANGUAGE_REGEX.search(body)
    if match:
        language = match.group(1).strip()
        if language and language.lower() not in ("none", NO_RESPONSE):
            details.language_tag = language

    match = EXISTING_EXTENSION_REGEX.search(body)
    if match:
        existing = match.group(1).strip()
        if existing and existing.upper() != "NONE" and existing.lower() != NO_RESPONSE:
            details.existing_extension_url = existing

    return details


def _status_of(item: dict[str, Any]) -> str | None:
    for value in item.get("fieldValues", {}).get("nodes", []):
        if value.get("__typename") != "ProjectV2ItemFieldSingleSelectValue":
            continue
        if (value.get("field") or {}).get("name") == "Status":
            return value.get("name")
    return None


def parse_project_item(item: dict[str, Any]) -> ReviewRequest | None:
    """Turn one project item into a queued ReviewRequest.

    Returns:
        The request, or None when the item is not a queued extension issue
    """
    content = item.get("content") or {}
    if content.get("__typename") != "Issue":
        return None

    labels = [label["name"] for label in content.get("labels", {}).get("nodes", [])]
    if not any(label.lower().startswith(EXTENSION_LABEL) for label in labels):
        return None

    status = _status_of(item)
    if status is None or status.lower() != QUEUED_STATUS:
        return None

    return ReviewRequest(
        issue_number=content["number"],
        title=content.get("title") or "",
        url=content.get("url") or "",
        status=status,
        project_item_id=item["id"],
        labels=labels,
        details=extract_review_details(content.get("body")),
    )


class GitHubReviewSource(ReviewRequestSource):
    """Reads queued extension review requests from a GitHub project.

    Example:
        >>> source = GitHubReviewSource(token="...", project_id="PVT_...")
        >>> for request in source.list_queued_requests():
        ...     print(request.issue_number, request.details.extension_mod_id)
    """

    def __init__(
        self,
        token: str,
        project_id: str,
        url: str = GITHUB_GRAPHQL_URL,
        http: Any = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.token = token
        self.project_id = project_id
        self.url = url
        self.http = http if http is not None else requests
        self.timeout = timeout

    def _query(self, cursor: str | None) -> dict[str, Any]:
        try:
            response = self.http.post(
                self.url,
                json={
                    "query": PROJECT_ITEMS_QUERY,
                    "variables": {"projectId": self.project_id, "cursor": cursor},
                },
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise ReviewRequestError(f"GitHub request failed: {e}") from e
        except ValueError as e:
            raise ReviewRequestError(f"Invalid JSON from GitHub: {e}") from e

        if payload.get("errors"):
            messages = "; ".join(error.get("message", "unknown error") for error in payload["errors"])
            raise ReviewRequestError(f"GitHub query failed: {messages}")

        node = (payload.get("data") or {}).get("node")
        if node is None:
            raise ReviewRequestError(f"Project not found: {self.project_id}")
        return node["items"]

    def list_queued_requests(self) -> list[ReviewRequest]:
        """List queued extension review requests, following pagination.

        Raises:
            ReviewRequestError: If the project cannot be read
        """
        print(f"Fetching issues from project: {self.project_id}", file=sys.stderr)

        requests_found: list[ReviewRequest] = []
        cursor: str | None = None
        while True:
            items = self._query(cursor)
            for item in items.get("nodes", []):
                request = parse_project_item(item)
                if request is not None:
                    requests_found.append(request)

            page_info = items.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")

        print(f"Found {len(requests_found)} queued extension review request(s)", file=sys.stderr)
        return requests_found
