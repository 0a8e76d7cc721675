"""
GitHub Issue <-> Row adapter.

issue_to_row() flattens an issue into list-row shape, row_data_to_issue_payload()
maps edited row data back to a create/update payload, and
sync_list_cache_from_github() mirrors every issue of a repository into the
local cache.

The sync is a full resync: it pages from page 1 until a short page, drops
pull requests, and upserts each page as it arrives. A failure part way through
leaves the pages already written in place; running the sync again converges.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from listdata import config
from listdata.github.client import GitHubClient

logger = logging.getLogger(__name__)

ISSUE_ROW_KEYS = (
    "number",
    "title",
    "body",
    "state",
    "labels",
    "assignees",
    "url",
    "created_at",
    "updated_at",
)


@dataclass(frozen=True)
class GitHubIssuesContext:
    """Already-authorized access to one repository's issues."""

    access_token: str
    owner: str
    repo_name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"


# ============================================================
# Issue -> row
# ============================================================


def format_iso_timestamp(value: Any) -> str | None:
    """ISO-8601 UTC with milliseconds (2024-01-02T03:04:05.000Z), or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _names(items: Any, attr: str) -> str:
    if not isinstance(items, list):
        return ""
    names = []
    for item in items:
        if isinstance(item, dict) and item.get(attr):
            names.append(str(item[attr]))
        elif isinstance(item, str) and item:
            names.append(item)
    return ",".join(names)


def issue_to_row(issue: dict) -> dict:
    """
    Map a GitHub issue to ``{"id", "row_data"}``.

    ``id`` is the issue number as a string. Labels and assignees are
    comma-joined names/logins.
    """
    number = issue.get("number")
    body = issue.get("body")
    return {
        "id": str(number),
        "row_data": {
            "number": number,
            "title": issue.get("title") or "",
            "body": body if isinstance(body, str) else "",
            "state": issue.get("state") or "",
            "labels": _names(issue.get("labels"), "name"),
            "assignees": _names(issue.get("assignees"), "login"),
            "url": issue.get("html_url") or "",
            "created_at": format_iso_timestamp(issue.get("created_at")),
            "updated_at": format_iso_timestamp(issue.get("updated_at")),
        },
    }


# ============================================================
# Row -> issue payload
# ============================================================


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, list | tuple):
        parts = [v for v in value if isinstance(v, str)]
    else:
        return []
    return [p.strip() for p in parts if p.strip()]


def row_data_to_issue_payload(row_data: dict) -> dict:
    """
    Build a create/update payload from row data. Best effort and lossy:
    read-only GitHub metadata (number, url, timestamps) is ignored.
    """
    title = row_data.get("title")
    payload: dict[str, Any] = {
        "title": title.strip() if isinstance(title, str) and title.strip() else "Untitled",
    }

    body = row_data.get("body")
    if isinstance(body, str):
        payload["body"] = body

    state = row_data.get("state")
    if isinstance(state, str) and state.strip():
        payload["state"] = state.strip()

    labels = _string_list(row_data.get("labels"))
    if labels:
        payload["labels"] = labels

    assignees = _string_list(row_data.get("assignees"))
    if assignees:
        payload["assignees"] = assignees

    return payload


# ============================================================
# Cache sync
# ============================================================


def is_pull_request(issue: dict) -> bool:
    return bool(issue.get("pull_request"))


def sync_list_cache_from_github(
    list_id: str,
    context: GitHubIssuesContext,
    *,
    store,
    client: GitHubClient | None = None,
) -> int:
    """
    Full resync of a list's issue cache.

    Args:
        list_id: List whose cache is refreshed
        context: Authorized repository access
        store: Anything with ``upsert_issue_cache(list_id, issues) -> int``
        client: GitHubClient to use. Built from the context token if None.

    Returns:
        Number of issues synced (pull requests excluded).

    Raises:
        GitHubAPIError: first failed page. Earlier pages stay committed.
    """
    client = client or GitHubClient(context.access_token)
    page_size = config.GITHUB_PAGE_SIZE
    total = 0
    page = 1

    while True:
        items = client.list_issues_page(context.owner, context.repo_name, page, per_page=page_size)
        issues = [item for item in items if not is_pull_request(item)]
        if issues:
            total += store.upsert_issue_cache(list_id, issues)
        logger.debug(
            "Synced page %d of %s for list %s: %d issues (%d items)",
            page,
            context.full_name,
            list_id,
            len(issues),
            len(items),
        )
        if len(items) < page_size:
            break
        page += 1

    logger.info("Synced %d issues from %s into list %s", total, context.full_name, list_id)
    return total
