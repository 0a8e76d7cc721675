"""
SQL builders for the list store.

SQLite cannot bind table or column names, so those are interpolated here and
only here, after passing validate_identifier(). Row values never are: every
builder emits ``?`` placeholders.
"""

# ruff: noqa: S608 (identifiers validated before interpolation)

from __future__ import annotations

import re
from collections.abc import Iterable

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def validate_identifier(name: str) -> str:
    """Return *name* if it is a plain SQL identifier, else raise ValueError."""
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def _column_list(columns: Iterable[str]) -> list[str]:
    cols = [validate_identifier(c) for c in columns]
    if not cols:
        raise ValueError("At least one column is required")
    return cols


def _placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


# --- PRAGMA ---


def pragma_table_info(table: str) -> str:
    return f"PRAGMA table_info([{validate_identifier(table)}])"


def pragma_user_version_set(version: int) -> str:
    if not isinstance(version, int) or isinstance(version, bool) or version < 0:
        raise ValueError(f"Invalid schema version: {version!r}")
    return f"PRAGMA user_version = {version}"


# --- Queries ---


def select(
    table: str,
    columns: str = "*",
    where: str | None = None,
    order_by: str | None = None,
    suffix: str = "",
) -> str:
    """
    SELECT from a validated table.

    *columns*, *where* and *order_by* are raw SQL fragments written by the
    store itself; *where* must bind values with ``?``.
    """
    parts = [f"SELECT {columns} FROM {validate_identifier(table)}"]
    if where:
        parts.append(f"WHERE {where}")
    if order_by:
        parts.append(f"ORDER BY {order_by}")
    if suffix:
        parts.append(suffix)
    return " ".join(parts)


def select_count(table: str, where: str | None = None) -> str:
    return select(table, "COUNT(*) as c", where)


# --- Writes ---


def insert(table: str, columns: Iterable[str]) -> str:
    cols = _column_list(columns)
    return f"INSERT INTO {validate_identifier(table)} ({', '.join(cols)}) VALUES ({_placeholders(len(cols))})"


def upsert(
    table: str,
    columns: Iterable[str],
    conflict: Iterable[str],
    update_columns: Iterable[str],
) -> str:
    """INSERT that overwrites *update_columns* when *conflict* already exists.

    Used for the issue cache, keyed by (list_id, issue_number).
    """
    keys = _column_list(conflict)
    sets = ", ".join(f"{c} = excluded.{c}" for c in _column_list(update_columns))
    return f"{insert(table, columns)} ON CONFLICT({', '.join(keys)}) DO UPDATE SET {sets}"


def update(table: str, set_columns: Iterable[str], where: str = "id = ?") -> str:
    sets = ", ".join(f"{c} = ?" for c in _column_list(set_columns))
    return f"UPDATE {validate_identifier(table)} SET {sets} WHERE {where}"


# --- DDL ---


def alter_add_column(table: str, column: str, column_type: str) -> str:
    return (
        f"ALTER TABLE [{validate_identifier(table)}] "
        f"ADD COLUMN [{validate_identifier(column)}] {column_type}"
    )


def create_index(name: str, table: str, columns: str, where: str | None = None) -> str:
    """CREATE INDEX IF NOT EXISTS; *columns* and *where* are raw fragments."""
    sql = f"CREATE INDEX IF NOT EXISTS {validate_identifier(name)} ON {validate_identifier(table)} ({columns})"
    if where:
        sql += f" WHERE {where}"
    return sql
