"""
SQLite storage for lists, native rows and the GitHub issue cache.

Tables and indexes are declared below and converged into whatever database
file is opened: missing tables, columns and indexes are added, nothing is
ever dropped. Every other module opens the DB through get_connection().
"""

import logging
import re
import sqlite3
from collections import OrderedDict
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from listdata import paths, safe_sql

logger = logging.getLogger(__name__)

# Bump with any change to TABLES / INDEXES.
SCHEMA_VERSION = 1

# TABLES[name] = {"columns": [(name, ddl), ...], "primary_key": [...]}
# primary_key is only needed for composite keys.
TABLES: dict[str, dict] = OrderedDict()

TABLES["lists"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("description", "TEXT"),
        ("owner_id", "TEXT"),
        ("source", "TEXT NOT NULL DEFAULT 'native'"),
        # Schema document as JSON ({name, description, fields})
        ("schema_json", "TEXT NOT NULL"),
        # owner/name of the backing repository, NULL for native lists
        ("github_repo", "TEXT"),
        ("created_at", "TEXT NOT NULL"),
        ("updated_at", "TEXT NOT NULL"),
        ("deleted_at", "TEXT"),
    ],
}

TABLES["list_data_rows"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("list_id", "TEXT NOT NULL REFERENCES lists(id)"),
        ("row_data_json", "TEXT NOT NULL"),
        ("created_at", "TEXT NOT NULL"),
        ("updated_at", "TEXT NOT NULL"),
        ("deleted_at", "TEXT"),
    ],
}

TABLES["github_issue_cache"] = {
    "columns": [
        ("list_id", "TEXT NOT NULL REFERENCES lists(id)"),
        ("issue_number", "INTEGER NOT NULL"),
        ("issue_data_json", "TEXT NOT NULL"),
        ("fetched_at", "TEXT NOT NULL"),
    ],
    "primary_key": ["list_id", "issue_number"],
}

# (name, table, column expression, partial-index WHERE or None)
INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_lists_github_repo", "lists", "github_repo", "github_repo IS NOT NULL"),
    ("idx_list_data_rows_list", "list_data_rows", "list_id, created_at", None),
    ("idx_github_issue_cache_fetched", "github_issue_cache", "list_id, fetched_at", None),
]


def get_db_path() -> Path:
    """LISTDATA_DB, else <LISTDATA_HOME>/data/listdata.db."""
    return paths.db_path()


@contextmanager
def get_connection(
    db_path: Path | str | None = None,
    row_factory: bool = True,
) -> Generator[sqlite3.Connection, None, None]:
    """
    Open the list DB with foreign keys enforced. Commits when the block exits
    cleanly; an exception leaves the transaction uncommitted.

        with get_connection() as conn:
            conn.execute(...)
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    try:
        if row_factory:
            conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        yield conn
        conn.commit()
    finally:
        conn.close()


# --- Introspection ---


def get_table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    try:
        rows = conn.execute(safe_sql.pragma_table_info(table)).fetchall()
    except sqlite3.OperationalError:
        return set()
    return {row[1] for row in rows}


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row is not None


def _existing_indexes(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'index' AND name NOT LIKE 'sqlite_%'"
    ).fetchall()
    return {row[0] for row in rows}


def get_schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


# --- Convergence ---

# ALTER TABLE ADD COLUMN rejects these clauses
_ALTER_UNSUPPORTED = re.compile(
    r"\bPRIMARY\s+KEY\b|\bUNIQUE\b|\bREFERENCES\s+\w+\s*\([^)]*\)", re.IGNORECASE
)


def make_alter_safe(col_ddl: str) -> str:
    """
    Column DDL usable in ALTER TABLE ADD COLUMN.

    Key and reference clauses are dropped, and a NOT NULL column without a
    DEFAULT gets ``DEFAULT ''`` so existing rows stay valid.
    """
    ddl = " ".join(_ALTER_UNSUPPORTED.sub(" ", col_ddl).split())
    needs_default = re.search(r"\bNOT\s+NULL\b", ddl, re.IGNORECASE) and not re.search(
        r"\bDEFAULT\b", ddl, re.IGNORECASE
    )
    return f"{ddl} DEFAULT ''" if needs_default else ddl


def _create_table_sql(table_name: str, table_def: dict) -> str:
    lines = [f"    {name} {ddl}" for name, ddl in table_def["columns"]]
    if table_def.get("primary_key"):
        lines.append(f"    PRIMARY KEY ({', '.join(table_def['primary_key'])})")
    return "CREATE TABLE IF NOT EXISTS [{}] (\n{}\n)".format(
        safe_sql.validate_identifier(table_name), ",\n".join(lines)
    )


def converge(conn: sqlite3.Connection) -> dict:
    """
    Bring *conn* up to TABLES / INDEXES and stamp SCHEMA_VERSION.

    Returns what was created, for logging and `listdata init`.
    """
    results = {"tables_created": [], "columns_added": [], "indexes_created": []}

    for table_name, table_def in TABLES.items():
        if not table_exists(conn, table_name):
            conn.execute(_create_table_sql(table_name, table_def))
            results["tables_created"].append(table_name)
            continue

        present = get_table_columns(conn, table_name)
        for col_name, col_ddl in table_def["columns"]:
            if col_name not in present:
                conn.execute(safe_sql.alter_add_column(table_name, col_name, make_alter_safe(col_ddl)))
                results["columns_added"].append(f"{table_name}.{col_name}")

    indexes = _existing_indexes(conn)
    for idx_name, idx_table, idx_cols, idx_where in INDEXES:
        if idx_name not in indexes:
            conn.execute(safe_sql.create_index(idx_name, idx_table, idx_cols, idx_where))
            results["indexes_created"].append(idx_name)

    conn.execute(safe_sql.pragma_user_version_set(SCHEMA_VERSION))
    results["schema_version"] = SCHEMA_VERSION
    return results


# DB paths already converged by this process
_converged: set[str] = set()


def ensure_schema(db_path: Path | str | None = None) -> dict:
    """Converge *db_path* the first time this process sees it; later calls are no-ops."""
    path = Path(db_path) if db_path else get_db_path()
    if str(path) in _converged:
        return {"status": "skipped", "schema_version": SCHEMA_VERSION}

    with get_connection(path) as conn:
        previous = get_schema_version(conn)
        results = converge(conn)
    results["previous_version"] = previous

    if results["tables_created"] or results["columns_added"]:
        logger.info(
            "Converged %s (v%d -> v%d): tables=%s columns=%s",
            path,
            previous,
            SCHEMA_VERSION,
            results["tables_created"],
            results["columns_added"],
        )
    _converged.add(str(path))
    return results


def get_db_info(db_path: Path | str | None = None) -> dict:
    """Where the DB is and what it holds. Printed by `listdata init`."""
    path = Path(db_path) if db_path else get_db_path()
    info = {
        "resolved_db_path": str(path),
        "exists": path.exists(),
        "file_size": path.stat().st_size if path.exists() else None,
        "sqlite_version": sqlite3.sqlite_version,
        "user_version": None,
        "target_schema_version": SCHEMA_VERSION,
        "tables": {},
    }
    if not info["exists"]:
        return info

    with get_connection(path) as conn:
        info["user_version"] = get_schema_version(conn)
        for table in TABLES:
            info["tables"][table] = sorted(get_table_columns(conn, table)) if table_exists(conn, table) else None
    return info
