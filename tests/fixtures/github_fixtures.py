"""
In-memory GitHub issues for adapter, service and API tests.

FakeGitHubClient has the same methods as GitHubClient and serves pages from a
list of issue dicts, so sync tests never touch the network.
"""

from listdata.errors import GitHubAPIError, GitHubRateLimitError


def make_issue(number: int, **overrides) -> dict:
    """Issue JSON as returned by GET /repos/{owner}/{repo}/issues."""
    issue = {
        "id": 1000 + number,
        "number": number,
        "title": f"Issue {number}",
        "body": f"Body of issue {number}",
        "state": "open",
        "labels": [],
        "assignees": [],
        "html_url": f"https://github.com/acme/widgets/issues/{number}",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
    }
    issue.update(overrides)
    return issue


def make_pull_request(number: int, **overrides) -> dict:
    pr = make_issue(number, **overrides)
    pr["pull_request"] = {"url": f"https://api.github.com/repos/acme/widgets/pulls/{number}"}
    return pr


class FakeGitHubClient:
    """
    Serves ``issues`` in pages; records every call.

    fail_on_page: raise on that page number (GitHubRateLimitError if
    fail_status is 403/429, GitHubAPIError otherwise).
    """

    def __init__(self, issues=None, fail_on_page=None, fail_status=500):
        self.issues = list(issues or [])
        self.fail_on_page = fail_on_page
        self.fail_status = fail_status
        self.page_calls: list[int] = []
        self.created: list[dict] = []
        self.updated: list[tuple[int, dict]] = []
        self.access_token = None

    def list_issues_page(self, owner, repo, page, per_page=100, state="all"):
        self.page_calls.append(page)
        if self.fail_on_page == page:
            if self.fail_status in (403, 429):
                raise GitHubRateLimitError("GitHub API error 403: rate limited", status_code=self.fail_status)
            raise GitHubAPIError(f"GitHub API error {self.fail_status}", status_code=self.fail_status)
        start = (page - 1) * per_page
        return [dict(i) for i in self.issues[start : start + per_page]]

    def create_issue(self, owner, repo, payload):
        number = max([i["number"] for i in self.issues], default=0) + 1
        issue = make_issue(
            number,
            title=payload["title"],
            body=payload.get("body"),
            state=payload.get("state", "open"),
            labels=[{"name": n} for n in payload.get("labels", [])],
            assignees=[{"login": n} for n in payload.get("assignees", [])],
        )
        self.issues.append(issue)
        self.created.append(payload)
        return issue

    def update_issue(self, owner, repo, number, payload):
        self.updated.append((number, payload))
        for issue in self.issues:
            if issue["number"] == number:
                issue.update(
                    {
                        "title": payload["title"],
                        "body": payload.get("body", issue["body"]),
                        "state": payload.get("state", issue["state"]),
                    }
                )
                if "labels" in payload:
                    issue["labels"] = [{"name": n} for n in payload["labels"]]
                if "assignees" in payload:
                    issue["assignees"] = [{"login": n} for n in payload["assignees"]]
                return dict(issue)
        raise GitHubAPIError("GitHub API error 404: Not Found", status_code=404)
