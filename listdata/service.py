"""
ListDataService - list and row operations behind the API and the CLI.

Glues the schema parser, the row validator, the store and the GitHub adapter:

- native lists keep rows in list_data_rows;
- GitHub lists read from the issue cache (mapped to row shape) and write
  through to GitHub, upserting the returned issue into the cache.

Validation failures raise RowValidationError carrying the full result, so
callers can report every field problem at once.
"""

import logging
import re
from collections.abc import Callable, Sequence

from listdata import config
from listdata.dsl.parser import parse_schema, schema_to_document
from listdata.dsl.types import ParsedSchema
from listdata.dsl.validator import ValidationResult, validate_form_data
from listdata.errors import (
    BulkLimitExceededError,
    InvalidRepositoryError,
    RowNotFoundError,
    RowValidationError,
    SyncError,
    UnsupportedOperationError,
)
from listdata.github.adapter import (
    GitHubIssuesContext,
    issue_to_row,
    row_data_to_issue_payload,
    sync_list_cache_from_github,
)
from listdata.github.client import GitHubClient
from listdata.query import QueryParams, QueryResult, query_rows
from listdata.store import ListStore

logger = logging.getLogger(__name__)

REPO_RE = re.compile(r"^[a-zA-Z0-9_.-]+/[a-zA-Z0-9_.-]+$")


def parse_repo(github_repo: str) -> tuple[str, str]:
    """Split ``owner/name``. Raises InvalidRepositoryError otherwise."""
    if not isinstance(github_repo, str) or not REPO_RE.match(github_repo.strip()):
        raise InvalidRepositoryError(f"Invalid GitHub repository {github_repo!r}; expected owner/name")
    owner, name = github_repo.strip().split("/", 1)
    return owner, name


def is_github_list(list_record: dict) -> bool:
    return bool(list_record.get("github_repo"))


class ListDataService:
    """List operations over one store."""

    def __init__(
        self,
        store: ListStore | None = None,
        access_token: str | None = None,
        client_factory: Callable[[str], GitHubClient] = GitHubClient,
    ):
        """
        Args:
            store: ListStore. Defaults to one on the canonical DB path.
            access_token: GitHub token for GitHub lists. Falls back to
                config.GITHUB_TOKEN.
            client_factory: Builds a GitHubClient from a token.
        """
        self.store = store or ListStore()
        self.access_token = access_token
        self.client_factory = client_factory

    # ==================== Lists ====================

    def create_list(
        self,
        document: dict,
        github_repo: str | None = None,
        owner_id: str | None = None,
    ) -> dict:
        """
        Parse a schema document and create a list from it.

        Raises:
            SchemaError: the document is rejected.
            InvalidRepositoryError: github_repo is not owner/name.
        """
        parsed = parse_schema(document)
        if github_repo:
            parse_repo(github_repo)
            github_repo = github_repo.strip()
        return self.store.create_list(
            parsed.name,
            schema_to_document(parsed),
            description=parsed.description,
            github_repo=github_repo or None,
            owner_id=owner_id,
        )

    def get_list(self, list_id: str) -> dict:
        return self.store.get_list(list_id)

    def get_schema(self, list_id: str) -> ParsedSchema:
        return parse_schema(self.store.get_list(list_id)["schema"])

    def update_schema(self, list_id: str, document: dict) -> dict:
        """Replace the schema. Existing rows are not revalidated."""
        parsed = parse_schema(document)
        return self.store.update_list_schema(list_id, schema_to_document(parsed))

    # ==================== GitHub access ====================

    def github_context(self, list_record: dict) -> GitHubIssuesContext | None:
        """Context for a GitHub list, or None when no token is available."""
        token = self.access_token or config.GITHUB_TOKEN
        if not token or not is_github_list(list_record):
            return None
        owner, repo_name = parse_repo(list_record["github_repo"])
        return GitHubIssuesContext(access_token=token, owner=owner, repo_name=repo_name)

    def _require_context(self, list_record: dict) -> GitHubIssuesContext:
        context = self.github_context(list_record)
        if context is None:
            raise SyncError(f"No GitHub access token available for list {list_record['id']}")
        return context

    def refresh(self, list_id: str) -> int:
        """
        Full resync of a GitHub list's cache. Returns issues synced.

        Raises:
            UnsupportedOperationError: native list.
            GitHubAPIError: first failed page (earlier pages stay cached).
        """
        list_record = self.store.get_list(list_id)
        if not is_github_list(list_record):
            raise UnsupportedOperationError(f"List {list_id} is not backed by GitHub")
        context = self._require_context(list_record)
        return sync_list_cache_from_github(
            list_id,
            context,
            store=self.store,
            client=self.client_factory(context.access_token),
        )

    # ==================== Reads ====================

    def get_rows(self, list_id: str, params: QueryParams | None = None) -> QueryResult:
        """
        Query a list's rows.

        A GitHub list with an empty cache is synced first when a token is
        available.
        """
        params = params or QueryParams()
        list_record = self.store.get_list(list_id)

        if is_github_list(list_record):
            if self.store.count_cached_issues(list_id) == 0 and self.github_context(list_record):
                logger.info("Cache empty for list %s, syncing from GitHub", list_id)
                self.refresh(list_id)
            rows = [issue_to_row(issue) for issue in self.store.get_cached_issues(list_id)]
        else:
            rows = self.store.get_rows(list_id)

        return query_rows(rows, params.filter, params.sort, params.pagination)

    def _find_issue(self, list_id: str, row_id: str) -> dict:
        for issue in self.store.get_cached_issues(list_id):
            if str(issue.get("number")) == str(row_id):
                return issue
        raise RowNotFoundError(f"Row not found: {row_id}")

    # ==================== Writes ====================

    def _validate(self, schema: ParsedSchema, data: dict, index: int | None = None) -> ValidationResult:
        result = validate_form_data(schema, data)
        if not result.is_valid:
            raise RowValidationError(result, index=index)
        return result

    def add_row(self, list_id: str, data: dict) -> dict:
        """
        Validate and insert one row.

        For GitHub lists the row becomes a new issue; the created issue is
        cached and returned in row shape.

        Raises:
            RowValidationError: the row failed validation.
        """
        list_record = self.store.get_list(list_id)
        schema = parse_schema(list_record["schema"])
        result = self._validate(schema, data)

        if not is_github_list(list_record):
            return self.store.insert_row(list_id, result.data)

        context = self._require_context(list_record)
        client = self.client_factory(context.access_token)
        issue = client.create_issue(
            context.owner, context.repo_name, row_data_to_issue_payload(result.data)
        )
        self.store.upsert_issue_cache(list_id, [issue])
        logger.info("Created issue #%s in %s for list %s", issue.get("number"), context.full_name, list_id)
        return issue_to_row(issue)

    def add_rows_bulk(self, list_id: str, rows: Sequence[dict]) -> list[dict]:
        """
        Validate every row, then insert all of them in one transaction.
        Nothing is written if any row fails.

        Raises:
            UnsupportedOperationError: GitHub list.
            BulkLimitExceededError: more than config.BULK_ROW_LIMIT rows.
            RowValidationError: first failing row (``index`` set).
        """
        list_record = self.store.get_list(list_id)
        if is_github_list(list_record):
            raise UnsupportedOperationError("Bulk insert is not supported for GitHub lists")
        if len(rows) > config.BULK_ROW_LIMIT:
            raise BulkLimitExceededError(
                f"Bulk insert limited to {config.BULK_ROW_LIMIT} rows, got {len(rows)}"
            )

        schema = parse_schema(list_record["schema"])
        validated = [self._validate(schema, data, index=i).data for i, data in enumerate(rows)]
        stored = self.store.insert_rows(list_id, validated)
        logger.info("Inserted %d rows into list %s", len(stored), list_id)
        return stored

    def update_row(self, list_id: str, row_id: str, data: dict) -> dict:
        """
        Merge *data* over the row's current data, validate, and replace.

        Raises:
            RowNotFoundError: unknown row.
            RowValidationError: merged row failed validation.
        """
        list_record = self.store.get_list(list_id)
        schema = parse_schema(list_record["schema"])

        if not is_github_list(list_record):
            existing = self.store.get_row(list_id, row_id)
            result = self._validate(schema, {**existing["row_data"], **data})
            return self.store.update_row(list_id, row_id, result.data)

        current = issue_to_row(self._find_issue(list_id, row_id))["row_data"]
        result = self._validate(schema, {**current, **data})
        context = self._require_context(list_record)
        client = self.client_factory(context.access_token)
        issue = client.update_issue(
            context.owner,
            context.repo_name,
            int(row_id),
            row_data_to_issue_payload({**current, **result.data}),
        )
        self.store.upsert_issue_cache(list_id, [issue])
        return issue_to_row(issue)

    def delete_row(self, list_id: str, row_id: str) -> None:
        """Soft delete. Native lists only."""
        list_record = self.store.get_list(list_id)
        if is_github_list(list_record):
            raise UnsupportedOperationError("Rows of GitHub lists cannot be deleted here")
        self.store.soft_delete_row(list_id, row_id)
