"""
CLI tests: run cli.main.main() with --db pointed at a temp file.
"""

import json
from unittest.mock import Mock, patch

import pytest

from cli.main import main
from listdata.service import ListDataService
from listdata.store import ListStore
from tests.conftest import SCHEMAS_DIR
from tests.fixtures import make_issue, make_pull_request


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


def _created_id(output: str) -> str:
    # "OK: created list <id> (<name>, <source>)"
    return output.split("created list ", 1)[1].split(" ", 1)[0]


class TestInit:
    def test_init(self, db_path, capsys):
        assert main(["--db", db_path, "init"]) == 0
        out = capsys.readouterr().out
        assert "Tables created: lists, list_data_rows, github_issue_cache" in out
        assert "schema v1" in out


class TestCheckSchema:
    def test_valid(self, capsys):
        assert main(["check-schema", str(SCHEMAS_DIR / "contacts.json")]) == 0
        out = capsys.readouterr().out
        assert "valid (5 fields, 2 required, 1 conditional)" in out

    def test_invalid(self, capsys):
        assert main(["check-schema", str(SCHEMAS_DIR / "broken.json")]) == 1
        out = capsys.readouterr().out
        assert "INVALID" in out
        assert "error InvalidFieldType [a]" in out

    def test_json_report(self, capsys):
        assert main(["check-schema", "--json", str(SCHEMAS_DIR / "issues.yaml")]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["is_valid"] is True
        assert report["field_count"] == 4

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check-schema", str(tmp_path / "nope.json")]) == 1
        assert "ERROR" in capsys.readouterr().err


class TestListCommands:
    def test_create_and_query(self, db_path, capsys):
        assert main(["--db", db_path, "create-list", str(SCHEMAS_DIR / "contacts.json")]) == 0
        list_id = _created_id(capsys.readouterr().out)

        service = ListDataService(store=ListStore(db_path))
        service.add_rows_bulk(
            list_id,
            [
                {"name": "Ana", "status": "active", "tier": "premium"},
                {"name": "Raj", "status": "inactive"},
                {"name": "Zoe", "status": "active"},
            ],
        )

        args = ["--db", db_path, "query", list_id, "--filter", "status=active", "--sort", "name", "--order", "desc"]
        assert main(args) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["total"] == 2
        assert [r["row_data"]["name"] for r in result["rows"]] == ["Zoe", "Ana"]

    def test_bad_filter(self, db_path):
        with pytest.raises(SystemExit):
            main(["--db", db_path, "query", "whatever", "--filter", "status"])

    def test_bad_repo(self, db_path, capsys):
        args = ["--db", db_path, "create-list", str(SCHEMAS_DIR / "issues.yaml"), "--github-repo", "widgets"]
        assert main(args) == 1
        assert "owner/name" in capsys.readouterr().err


class TestSyncCommands:
    @patch("listdata.github.client.httpx.request")
    def test_sync_github_list(self, mock_request, db_path, capsys):
        response = Mock()
        response.status_code = 200
        response.content = b"[]"
        response.json.return_value = [make_issue(2), make_pull_request(3), make_issue(1)]
        mock_request.return_value = response

        create = ["--db", db_path, "create-list", str(SCHEMAS_DIR / "issues.yaml"), "--github-repo", "acme/widgets"]
        assert main(create) == 0
        list_id = _created_id(capsys.readouterr().out)

        assert main(["--db", db_path, "--token", "tok", "sync", list_id]) == 0
        assert f"synced 2 issues into list {list_id}" in capsys.readouterr().out
        assert mock_request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_sync_without_token(self, db_path, capsys):
        create = ["--db", db_path, "create-list", str(SCHEMAS_DIR / "issues.yaml"), "--github-repo", "acme/widgets"]
        main(create)
        list_id = _created_id(capsys.readouterr().out)

        assert main(["--db", db_path, "sync", list_id]) == 1
        assert "No GitHub access token" in capsys.readouterr().err

    def test_sync_all_nothing_to_do(self, db_path, capsys):
        assert main(["--db", db_path, "sync-all", "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["lists_synced"] == 0
