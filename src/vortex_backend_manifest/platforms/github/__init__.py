"""GitHub review-request platform.

Reads queued extension review requests from a project board and
registers itself with SourceRegistry as 'github'.
"""

from .source import GitHubReviewSource, extract_review_details, parse_project_item

# Auto-register with the registry
from ...registry import SourceRegistry


def _create_github_source(token: str, project_id: str, **kwargs) -> GitHubReviewSource:
    """Factory function for creating GitHubReviewSource.

    Args:
        token: Personal access token
        project_id: ProjectV2 node id
        **kwargs: Passed through to GitHubReviewSource (url, http, timeout)

    Returns:
        Configured GitHubReviewSource instance
    """
    return GitHubReviewSource(token, project_id, **kwargs)


SourceRegistry.register_factory('github', _create_github_source)

__all__ = [
    "GitHubReviewSource",
    "extract_review_details",
    "parse_project_item",
]
