"""
GitHub Issues integration: REST client, issue/row mapping and cache sync.
"""

from .adapter import (
    GitHubIssuesContext,
    issue_to_row,
    row_data_to_issue_payload,
    sync_list_cache_from_github,
)
from .client import GitHubClient

__all__ = [
    "GitHubClient",
    "GitHubIssuesContext",
    "issue_to_row",
    "row_data_to_issue_payload",
    "sync_list_cache_from_github",
]
