"""
Filter / sort / paginate over list rows.

Works the same for native rows and for GitHub issues mapped to row shape.
Matching is deliberately simple:

- filter: exact, case-sensitive equality of the stringified cell value.
  A key the row does not have never matches. No fuzzy or type-aware matching.
- sort: one field, string comparison of the stringified value. Numbers and
  dates only order correctly when their string forms do (ISO dates do).
- pagination: ``page`` (1-based) wins over ``offset``.

Odd input never raises: bad numbers fall back to defaults, unknown fields
simply match nothing or sort as empty.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from listdata import config
from listdata.dsl.values import stringify

RESERVED_QUERY_KEYS = frozenset({"limit", "offset", "page", "sort", "order"})


def _lenient_int(v: Any) -> int | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            return None
    return None


class PaginationParams(BaseModel):
    """Pagination input: limit plus either offset or a 1-based page."""

    limit: int | None = Field(default=None, description="Rows per page (capped)")
    offset: int | None = Field(default=None, description="Rows to skip")
    page: int | None = Field(default=None, description="Page number (1-indexed)")

    @field_validator("limit", "offset", "page", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int | None:
        return _lenient_int(v)

    def resolve(self) -> tuple[int, int]:
        """Effective (limit, offset)."""
        limit = self.limit if self.limit is not None and self.limit > 0 else config.QUERY_DEFAULT_LIMIT
        limit = min(limit, config.QUERY_MAX_LIMIT)
        if self.page is not None:
            offset = (max(self.page, 1) - 1) * limit
        else:
            offset = max(self.offset or 0, 0)
        return limit, offset


class SortSpec(BaseModel):
    """Single-field sort."""

    field: str
    order: Literal["asc", "desc"] = "asc"

    @field_validator("order", mode="before")
    @classmethod
    def normalize_order(cls, v: Any) -> str:
        return "desc" if isinstance(v, str) and v.strip().lower() == "desc" else "asc"


class QueryParams(BaseModel):
    """Everything query_rows() accepts, as parsed from a query string."""

    filter: dict[str, str] = Field(default_factory=dict)
    sort: SortSpec | None = None
    pagination: PaginationParams = Field(default_factory=PaginationParams)


class QueryResult(BaseModel):
    """One page of rows plus the pre-pagination match count."""

    rows: list[dict] = Field(..., description="Rows on this page")
    total: int = Field(..., description="Rows matching the filter")
    limit: int = Field(..., description="Effective page size")
    offset: int = Field(..., description="Effective offset")
    has_more: bool = Field(..., description="Whether rows exist past this page")


def _row_data(row: Mapping) -> Mapping:
    data = row.get("row_data")
    return data if isinstance(data, Mapping) else row


def _active_filters(filters: Mapping[str, Any] | None) -> dict[str, str]:
    if not filters:
        return {}
    return {k: stringify(v) for k, v in filters.items() if v is not None and v != ""}


def filter_rows(rows: Iterable[Mapping], filters: Mapping[str, Any] | None) -> list[Mapping]:
    """Rows whose every filtered key stringifies to exactly the filter value."""
    active = _active_filters(filters)
    if not active:
        return list(rows)

    matched = []
    for row in rows:
        data = _row_data(row)
        if all(key in data and stringify(data[key]) == expected for key, expected in active.items()):
            matched.append(row)
    return matched


def sort_rows(rows: Iterable[Mapping], sort: SortSpec | Mapping | None) -> list[Mapping]:
    """Stable single-field sort on the stringified value. Missing values sort as ""."""
    rows = list(rows)
    if sort is None:
        return rows
    if not isinstance(sort, SortSpec):
        sort = SortSpec.model_validate(sort)
    return sorted(
        rows,
        key=lambda row: stringify(_row_data(row).get(sort.field)),
        reverse=sort.order == "desc",
    )


def query_rows(
    rows: Iterable[Mapping],
    filter: Mapping[str, Any] | None = None,  # noqa: A002
    sort: SortSpec | Mapping | None = None,
    pagination: PaginationParams | Mapping | None = None,
) -> QueryResult:
    """
    Filter, then sort, then slice.

    Args:
        rows: Row dicts (``{"id", "row_data", ...}``) or bare row-data dicts
        filter: field -> expected value; None/"" values are ignored
        sort: SortSpec or ``{"field", "order"}``
        pagination: PaginationParams or ``{"limit", "offset", "page"}``
    """
    if pagination is None:
        pagination = PaginationParams()
    elif not isinstance(pagination, PaginationParams):
        pagination = PaginationParams.model_validate(dict(pagination))
    limit, offset = pagination.resolve()

    matched = sort_rows(filter_rows(rows, filter), sort)
    total = len(matched)
    page = matched[offset : offset + limit]

    return QueryResult(
        rows=[dict(r) for r in page],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(page) < total,
    )


def params_from_query(query: Mapping[str, Any]) -> QueryParams:
    """
    Split query-string parameters into filter / sort / pagination.

    ``limit, offset, page, sort, order`` are reserved; every other key is a
    filter on that field.
    """
    filters = {
        key: str(value)
        for key, value in query.items()
        if key not in RESERVED_QUERY_KEYS and value is not None and value != ""
    }

    sort_field = query.get("sort")
    sort = None
    if isinstance(sort_field, str) and sort_field.strip():
        sort = SortSpec(field=sort_field.strip(), order=query.get("order") or "asc")

    return QueryParams(
        filter=filters,
        sort=sort,
        pagination=PaginationParams(
            limit=query.get("limit"),
            offset=query.get("offset"),
            page=query.get("page"),
        ),
    )
