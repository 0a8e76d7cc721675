"""
GitHubClient - REST access to a repository's issues.

Reads issue pages for the cache sync and writes local edits back.
Uses httpx for HTTP calls. No retries here: 403/429 surface as
GitHubRateLimitError and the caller decides when to run again.
"""

import logging

import httpx

from listdata import config
from listdata.errors import GitHubAPIError, GitHubRateLimitError

logger = logging.getLogger(__name__)


class GitHubClient:
    """Authenticated client for the GitHub issues endpoints."""

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize GitHubClient.

        Args:
            access_token: OAuth / personal access token, already authorized.
            base_url: API root. Defaults to config.GITHUB_API_BASE.
            timeout: Request timeout in seconds.
        """
        if not access_token:
            raise ValueError("No GitHub access token provided.")
        self.access_token = access_token
        self.base_url = (base_url or config.GITHUB_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else config.GITHUB_TIMEOUT_SECONDS

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": config.GITHUB_API_VERSION,
        }

    def _request(
        self,
        method: str,
        path: str,
        json_data: dict | None = None,
        params: dict | None = None,
    ):
        """
        Make an authenticated request and return the decoded JSON body.

        Raises:
            GitHubRateLimitError: 403 / 429 from GitHub.
            GitHubAPIError: any other non-2xx status, or a transport failure.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = httpx.request(
                method,
                url,
                headers=self._headers(),
                json=json_data,
                params=params,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"GitHub request failed: {method} {path}: {e}")
            raise GitHubAPIError(f"GitHub request failed: {e}", transient=True) from e

        if 200 <= response.status_code < 300:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"GitHub returned non-JSON body: {method} {path}")
                raise GitHubAPIError(
                    f"GitHub API returned invalid JSON ({response.status_code})",
                    status_code=response.status_code,
                ) from e

        error_msg = f"GitHub API error {response.status_code}"
        try:
            detail = response.json().get("message")
            if detail:
                error_msg += f": {detail}"
        except (ValueError, AttributeError):
            error_msg += f": {response.text[:200]}"

        if response.status_code in config.GITHUB_TRANSIENT_STATUSES:
            retry_after = response.headers.get("Retry-After")
            if not (isinstance(retry_after, str) and retry_after.isdigit()):
                retry_after = None
            logger.warning(f"{error_msg} ({method} {path})")
            raise GitHubRateLimitError(
                error_msg,
                status_code=response.status_code,
                retry_after=int(retry_after) if retry_after else None,
            )

        logger.error(f"{error_msg} ({method} {path})")
        raise GitHubAPIError(error_msg, status_code=response.status_code)

    def list_issues_page(
        self,
        owner: str,
        repo: str,
        page: int,
        per_page: int | None = None,
        state: str = "all",
    ) -> list[dict]:
        """
        Fetch one page of issues (pull requests included, as GitHub returns them).

        Args:
            owner: Repository owner
            repo: Repository name
            page: 1-based page number
            per_page: Page size. Defaults to config.GITHUB_PAGE_SIZE.
            state: open, closed or all
        """
        data = self._request(
            "GET",
            f"repos/{owner}/{repo}/issues",
            params={
                "state": state,
                "per_page": per_page or config.GITHUB_PAGE_SIZE,
                "page": page,
            },
        )
        if not isinstance(data, list):
            raise GitHubAPIError(f"Unexpected issues payload for {owner}/{repo}")
        return data

    def create_issue(self, owner: str, repo: str, payload: dict) -> dict:
        """Create an issue. Returns the issue JSON."""
        return self._request("POST", f"repos/{owner}/{repo}/issues", json_data=payload)

    def update_issue(self, owner: str, repo: str, number: int, payload: dict) -> dict:
        """Update title/body/state/labels/assignees of an issue. Returns the issue JSON."""
        return self._request("PATCH", f"repos/{owner}/{repo}/issues/{number}", json_data=payload)
