"""
ListStore - persistence for lists, list rows and the GitHub issue cache.

Thin layer over SQLite. Each operation opens its own connection and commits
when its context block exits; nothing is cached in memory. Rows are only ever
soft-deleted. The issue cache is keyed by (list_id, issue_number) and written
with an upsert, so a full resync overwrites without needing prior state.
"""

import json
import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from listdata import db as db_module
from listdata import safe_sql
from listdata.errors import ListNotFoundError, RowNotFoundError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _list_from_row(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "owner_id": row["owner_id"],
        "source": row["source"],
        "schema": json.loads(row["schema_json"]),
        "github_repo": row["github_repo"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _data_row_from_row(row) -> dict:
    return {
        "id": row["id"],
        "list_id": row["list_id"],
        "row_data": json.loads(row["row_data_json"]),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


class ListStore:
    """Lists, rows and issue cache in one SQLite file."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else db_module.get_db_path()
        db_module.ensure_schema(self.db_path)

    def _conn(self):
        return db_module.get_connection(self.db_path)

    # ==================== Lists ====================

    def create_list(
        self,
        name: str,
        schema_document: dict,
        description: str | None = None,
        github_repo: str | None = None,
        owner_id: str | None = None,
    ) -> dict:
        """Insert a list. *schema_document* must already be validated."""
        now = _now()
        record = {
            "id": str(uuid.uuid4()),
            "name": name,
            "description": description,
            "owner_id": owner_id,
            "source": "github" if github_repo else "native",
            "schema_json": json.dumps(schema_document),
            "github_repo": github_repo,
            "created_at": now,
            "updated_at": now,
        }
        with self._conn() as conn:
            conn.execute(safe_sql.insert("lists", list(record)), list(record.values()))
        logger.info("Created list %s (%s)", record["id"], name)
        return self.get_list(record["id"])

    def get_list(self, list_id: str) -> dict:
        """
        Raises:
            ListNotFoundError: unknown or soft-deleted list.
        """
        with self._conn() as conn:
            row = conn.execute(
                safe_sql.select("lists", where="id = ? AND deleted_at IS NULL"), (list_id,)
            ).fetchone()
        if row is None:
            raise ListNotFoundError(f"List not found: {list_id}")
        return _list_from_row(row)

    def update_list_schema(self, list_id: str, schema_document: dict) -> dict:
        """Replace a list's schema. Existing rows are not revalidated."""
        with self._conn() as conn:
            cursor = conn.execute(
                safe_sql.update("lists", ["schema_json", "updated_at"], "id = ? AND deleted_at IS NULL"),
                (json.dumps(schema_document), _now(), list_id),
            )
        if cursor.rowcount == 0:
            raise ListNotFoundError(f"List not found: {list_id}")
        return self.get_list(list_id)

    def list_github_lists(self) -> list[dict]:
        """All live lists backed by a GitHub repository."""
        with self._conn() as conn:
            rows = conn.execute(
                safe_sql.select(
                    "lists",
                    where="github_repo IS NOT NULL AND deleted_at IS NULL",
                    order_by="created_at",
                )
            ).fetchall()
        return [_list_from_row(r) for r in rows]

    # ==================== Rows ====================

    def insert_row(self, list_id: str, row_data: dict) -> dict:
        return self.insert_rows(list_id, [row_data])[0]

    def insert_rows(self, list_id: str, rows: Iterable[dict]) -> list[dict]:
        """Insert several rows in one transaction. Returns the stored rows."""
        now = _now()
        records = [
            {
                "id": str(uuid.uuid4()),
                "list_id": list_id,
                "row_data_json": json.dumps(data),
                "created_at": now,
                "updated_at": now,
            }
            for data in rows
        ]
        if not records:
            return []

        sql = safe_sql.insert("list_data_rows", list(records[0]))
        with self._conn() as conn:
            conn.executemany(sql, [list(r.values()) for r in records])

        return [
            {
                "id": r["id"],
                "list_id": list_id,
                "row_data": json.loads(r["row_data_json"]),
                "created_at": now,
                "updated_at": now,
            }
            for r in records
        ]

    def get_row(self, list_id: str, row_id: str) -> dict:
        """
        Raises:
            RowNotFoundError: unknown or soft-deleted row.
        """
        with self._conn() as conn:
            row = conn.execute(
                safe_sql.select(
                    "list_data_rows", where="id = ? AND list_id = ? AND deleted_at IS NULL"
                ),
                (row_id, list_id),
            ).fetchone()
        if row is None:
            raise RowNotFoundError(f"Row not found: {row_id}")
        return _data_row_from_row(row)

    def get_rows(self, list_id: str) -> list[dict]:
        """Live rows of a list in insertion order."""
        with self._conn() as conn:
            rows = conn.execute(
                safe_sql.select(
                    "list_data_rows",
                    where="list_id = ? AND deleted_at IS NULL",
                    order_by="created_at, rowid",
                ),
                (list_id,),
            ).fetchall()
        return [_data_row_from_row(r) for r in rows]

    def update_row(self, list_id: str, row_id: str, row_data: dict) -> dict:
        """Replace a row's data wholesale."""
        with self._conn() as conn:
            cursor = conn.execute(
                safe_sql.update(
                    "list_data_rows",
                    ["row_data_json", "updated_at"],
                    "id = ? AND list_id = ? AND deleted_at IS NULL",
                ),
                (json.dumps(row_data), _now(), row_id, list_id),
            )
        if cursor.rowcount == 0:
            raise RowNotFoundError(f"Row not found: {row_id}")
        return self.get_row(list_id, row_id)

    def soft_delete_row(self, list_id: str, row_id: str) -> None:
        with self._conn() as conn:
            cursor = conn.execute(
                safe_sql.update(
                    "list_data_rows",
                    ["deleted_at"],
                    "id = ? AND list_id = ? AND deleted_at IS NULL",
                ),
                (_now(), row_id, list_id),
            )
        if cursor.rowcount == 0:
            raise RowNotFoundError(f"Row not found: {row_id}")

    # ==================== GitHub issue cache ====================

    def upsert_issue_cache(self, list_id: str, issues: Iterable[dict]) -> int:
        """
        Create-or-overwrite cache entries keyed by (list_id, issue number).

        All issues passed in one call are committed together. Returns the
        number of issues written.
        """
        fetched_at = _now()
        params = [
            (list_id, int(issue["number"]), json.dumps(issue), fetched_at) for issue in issues
        ]
        if not params:
            return 0

        sql = safe_sql.upsert(
            "github_issue_cache",
            ["list_id", "issue_number", "issue_data_json", "fetched_at"],
            conflict=["list_id", "issue_number"],
            update_columns=["issue_data_json", "fetched_at"],
        )
        with self._conn() as conn:
            conn.executemany(sql, params)
        return len(params)

    def get_cached_issues(self, list_id: str) -> list[dict]:
        """Cached issue payloads for a list, newest issue number first."""
        with self._conn() as conn:
            rows = conn.execute(
                safe_sql.select(
                    "github_issue_cache",
                    columns="issue_data_json",
                    where="list_id = ?",
                    order_by="issue_number DESC",
                ),
                (list_id,),
            ).fetchall()
        return [json.loads(r["issue_data_json"]) for r in rows]

    def count_cached_issues(self, list_id: str) -> int:
        with self._conn() as conn:
            row = conn.execute(
                safe_sql.select_count("github_issue_cache", where="list_id = ?"), (list_id,)
            ).fetchone()
        return row["c"]

    def cache_fetched_at(self, list_id: str) -> str | None:
        """Most recent fetch time for a list's cache, or None if never synced."""
        with self._conn() as conn:
            row = conn.execute(
                safe_sql.select(
                    "github_issue_cache", columns="MAX(fetched_at) as fetched_at", where="list_id = ?"
                ),
                (list_id,),
            ).fetchone()
        return row["fetched_at"] if row else None
