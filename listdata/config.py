"""
Centralized configuration for the list engine.

All values that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# GitHub
# ============================================================

GITHUB_API_BASE: str = os.environ.get("LISTDATA_GITHUB_API_BASE", "https://api.github.com")
"""GitHub REST API root. Override for GitHub Enterprise."""

GITHUB_API_VERSION: str = "2022-11-28"
"""Value sent in the X-GitHub-Api-Version header."""

GITHUB_TOKEN: str | None = os.environ.get("GITHUB_TOKEN") or None
"""Token used by the default context resolver (cron / CLI). Routes may pass their own."""

GITHUB_PAGE_SIZE: int = 100
"""Issues requested per page during a full resync (GitHub maximum)."""

GITHUB_TIMEOUT_SECONDS: float = float(os.environ.get("LISTDATA_GITHUB_TIMEOUT", "30"))
"""Per-request HTTP timeout for GitHub calls."""

GITHUB_TRANSIENT_STATUSES: frozenset[int] = frozenset({403, 429})
"""Statuses treated as rate limiting. Surfaced to the caller, never retried here."""

# ============================================================
# Query layer
# ============================================================

QUERY_DEFAULT_LIMIT: int = int(os.environ.get("LISTDATA_QUERY_DEFAULT_LIMIT", "100"))
"""Rows per page when the caller gives no limit."""

QUERY_MAX_LIMIT: int = 1000
"""Hard cap on rows per page."""

# ============================================================
# Rows
# ============================================================

BULK_ROW_LIMIT: int = 1000
"""Maximum rows accepted by one bulk insert."""

# ============================================================
# API / cron
# ============================================================

CRON_SECRET: str | None = os.environ.get("CRON_SECRET") or None
"""Bearer secret required by the cron sync endpoint when set."""

LOG_LEVEL: str = os.environ.get("LISTDATA_LOG_LEVEL", "INFO")
"""Root log level for the API server and CLI."""

LOG_JSON: bool | None = (
    None
    if os.environ.get("LISTDATA_LOG_JSON") is None
    else os.environ["LISTDATA_LOG_JSON"].lower() in ("1", "true", "yes")
)
"""Force JSON (true) or human (false) logs. Unset = auto-detect from TTY."""
