"""
Lists API Router - schema checks, list creation, row reads and writes, sync.

Usage in server.py:
    from api.lists_router import lists_router
    app.include_router(lists_router, prefix="/api")

Endpoints:
- POST   /api/schema/validate             - Check a schema document
- POST   /api/lists                       - Create a list from a schema
- GET    /api/lists/{list_id}/data        - Query rows (filters from query string)
- POST   /api/lists/{list_id}/data        - Validated insert (single or bulk)
- PATCH  /api/lists/{list_id}/data/{id}   - Validated merge-and-replace
- DELETE /api/lists/{list_id}/data/{id}   - Soft delete (native lists)
- POST   /api/lists/{list_id}/refresh     - Resync a GitHub list
- GET    /api/cron/sync-github-lists      - Resync every GitHub list
"""

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from listdata import config
from listdata.cron_tasks import cron_sync_github_lists
from listdata.dsl.parser import validate_schema_document
from listdata.errors import (
    BulkLimitExceededError,
    GitHubAPIError,
    GitHubRateLimitError,
    InvalidRepositoryError,
    ListDataError,
    ListNotFoundError,
    RowNotFoundError,
    RowValidationError,
    SchemaError,
    SyncError,
    UnsupportedOperationError,
)
from listdata.query import QueryResult, params_from_query
from listdata.service import ListDataService

logger = logging.getLogger(__name__)

lists_router = APIRouter(tags=["Lists"])


# ==== Request / Response Models ====


class CreateListRequest(BaseModel):
    """Body of POST /lists."""

    model_config = ConfigDict(populate_by_name=True)

    schema_document: dict[str, Any] = Field(alias="schema", description="{name, description, fields}")
    github_repo: str | None = Field(default=None, description="owner/name of a backing repository")
    owner_id: str | None = None


class RowWriteRequest(BaseModel):
    """Body of POST /lists/{id}/data. ``bulk`` requires a list of rows."""

    data: dict[str, Any] | list[dict[str, Any]]
    bulk: bool = False


class RowPatchRequest(BaseModel):
    data: dict[str, Any]


class MutationResponse(BaseModel):
    """Standard mutation result."""

    success: bool = Field(description="Whether the operation succeeded")

    model_config = {"extra": "allow"}


# ==== Dependencies ====


def get_service() -> ListDataService:
    """Service on the canonical DB. Tests override this dependency."""
    return ListDataService()


def require_cron_secret(request: Request) -> None:
    """Bearer CRON_SECRET check. Open when no secret is configured."""
    expected = config.CRON_SECRET
    if not expected:
        return
    auth_header = request.headers.get("Authorization", "")
    provided = auth_header[7:] if auth_header.startswith("Bearer ") else ""
    if not provided or not secrets.compare_digest(provided, expected):
        logger.warning(f"Cron auth failed for {request.url.path}")
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ==== Error Mapping ====


def _http_error(e: ListDataError) -> HTTPException:
    """Map a list engine error to the HTTP status the API reports."""
    if isinstance(e, ListNotFoundError | RowNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, SchemaError):
        return HTTPException(status_code=400, detail={"error": "Invalid schema", **e.to_dict()})
    if isinstance(e, RowValidationError):
        detail = {
            "error": "Validation failed",
            "errors": [err.to_dict() for err in e.result.errors],
        }
        if e.index is not None:
            detail["index"] = e.index
        return HTTPException(status_code=400, detail=detail)
    if isinstance(e, BulkLimitExceededError | InvalidRepositoryError | UnsupportedOperationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, GitHubRateLimitError):
        headers = {"Retry-After": str(e.retry_after)} if e.retry_after else None
        return HTTPException(status_code=e.status_code, detail=e.message, headers=headers)
    if isinstance(e, GitHubAPIError):
        return HTTPException(status_code=502, detail=e.message)
    if isinstance(e, SyncError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ==== Schema ====


@lists_router.post("/schema/validate")
def validate_schema(document: dict[str, Any] = Body(...)) -> dict:
    """Report every problem and warning in a schema document."""
    return validate_schema_document(document).to_dict()


# ==== Lists ====


@lists_router.post("/lists", status_code=201)
def create_list(body: CreateListRequest, service: ListDataService = Depends(get_service)) -> dict:
    try:
        return service.create_list(
            body.schema_document, github_repo=body.github_repo, owner_id=body.owner_id
        )
    except ListDataError as e:
        raise _http_error(e) from e


# ==== Rows ====


@lists_router.get("/lists/{list_id}/data", response_model=QueryResult)
def get_list_data(
    list_id: str, request: Request, service: ListDataService = Depends(get_service)
) -> QueryResult:
    """Every query parameter except limit/offset/page/sort/order is an exact-match filter."""
    params = params_from_query(dict(request.query_params))
    try:
        return service.get_rows(list_id, params)
    except ListDataError as e:
        raise _http_error(e) from e


@lists_router.post("/lists/{list_id}/data", status_code=201)
def add_list_data(
    list_id: str, body: RowWriteRequest, service: ListDataService = Depends(get_service)
) -> dict:
    try:
        if body.bulk:
            if not isinstance(body.data, list):
                raise HTTPException(status_code=400, detail="Bulk insert requires a list of rows")
            rows = service.add_rows_bulk(list_id, body.data)
            return {"success": True, "count": len(rows), "rows": rows}

        if not isinstance(body.data, dict):
            raise HTTPException(status_code=400, detail="Use bulk=true to insert several rows")
        return {"success": True, "row": service.add_row(list_id, body.data)}
    except ListDataError as e:
        raise _http_error(e) from e


@lists_router.patch("/lists/{list_id}/data/{row_id}")
def update_list_data(
    list_id: str,
    row_id: str,
    body: RowPatchRequest,
    service: ListDataService = Depends(get_service),
) -> dict:
    try:
        return {"success": True, "row": service.update_row(list_id, row_id, body.data)}
    except ListDataError as e:
        raise _http_error(e) from e


@lists_router.delete("/lists/{list_id}/data/{row_id}", response_model=MutationResponse)
def delete_list_data(
    list_id: str, row_id: str, service: ListDataService = Depends(get_service)
) -> MutationResponse:
    try:
        service.delete_row(list_id, row_id)
    except ListDataError as e:
        raise _http_error(e) from e
    return MutationResponse(success=True, id=row_id)


# ==== Sync ====


@lists_router.post("/lists/{list_id}/refresh", response_model=MutationResponse)
def refresh_list(list_id: str, service: ListDataService = Depends(get_service)) -> MutationResponse:
    try:
        synced = service.refresh(list_id)
    except ListDataError as e:
        raise _http_error(e) from e
    return MutationResponse(success=True, synced=synced)


@lists_router.get("/cron/sync-github-lists", dependencies=[Depends(require_cron_secret)])
def cron_sync_lists(service: ListDataService = Depends(get_service)) -> dict:
    results = cron_sync_github_lists(service)
    return {"success": not results["errors"], **results}
