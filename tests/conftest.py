"""
Test configuration: puts the repo root on sys.path and isolates every test
from the live data directory.

The autouse guard points LISTDATA_HOME / LISTDATA_DB at a per-test temp dir and
clears the GitHub token and cron secret, so no test reads the user's DB or
reaches GitHub with real credentials.
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import listdata.*, api.*, cli.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from listdata import config  # noqa: E402
from listdata.store import ListStore  # noqa: E402

FIXTURES_DIR = REPO_ROOT / "tests" / "fixtures"
SCHEMAS_DIR = FIXTURES_DIR / "schemas"


# =============================================================================
# ISOLATION GUARD
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_data_home(tmp_path, monkeypatch):
    """Every test gets its own data home and no ambient credentials."""
    home = tmp_path / "listdata_home"
    monkeypatch.setenv("LISTDATA_HOME", str(home))
    monkeypatch.setenv("LISTDATA_DB", str(home / "data" / "listdata.db"))
    monkeypatch.setattr(config, "GITHUB_TOKEN", None)
    monkeypatch.setattr(config, "CRON_SECRET", None)
    return home


# =============================================================================
# STORE / SCHEMA FIXTURES
# =============================================================================


@pytest.fixture
def store(tmp_path):
    """Fresh ListStore on a temp SQLite file."""
    return ListStore(tmp_path / "test.db")


@pytest.fixture
def status_tier_schema():
    """Two selects; tier is only relevant while status == active."""
    return {
        "name": "Accounts",
        "fields": [
            {"key": "status", "type": "select", "options": ["active", "inactive"], "required": True},
            {
                "key": "tier",
                "type": "select",
                "options": ["standard", "premium"],
                "visibility": {"field": "status", "operator": "equals", "value": "active"},
            },
        ],
    }


@pytest.fixture
def issue_schema():
    """Schema of a GitHub-backed list (fields named after issue row keys)."""
    return {
        "name": "Widget issues",
        "fields": [
            {"key": "title", "type": "text", "label": "Title", "required": True},
            {"key": "body", "type": "textarea", "label": "Body"},
            {"key": "state", "type": "select", "label": "State", "options": ["open", "closed"]},
            {"key": "labels", "type": "text", "label": "Labels"},
        ],
    }
