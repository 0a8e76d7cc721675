"""
Test fixtures for deterministic testing.

This module provides:
- make_issue: GitHub issue JSON in the shape the REST API returns
- FakeGitHubClient: in-memory stand-in for GitHubClient (pages, writes, failures)
- schemas/: sample schema documents in JSON and YAML
"""

from .github_fixtures import FakeGitHubClient, make_issue, make_pull_request

__all__ = ["FakeGitHubClient", "make_issue", "make_pull_request"]
