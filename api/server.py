"""
List Data API Server - REST API for list schemas, rows and GitHub-backed lists.
"""
# ruff: noqa: S104
# S104: Development server binding (guarded by __name__ check)

import logging
import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.lists_router import lists_router
from listdata import config
from listdata import db as db_module
from listdata.observability import CorrelationIdMiddleware, configure_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="List Data API",
    description="User-defined lists: schema DSL, validated rows, GitHub issue sync",
    version="1.0.0",
)

# CORS middleware - configurable via CORS_ORIGINS env var
cors_origins_env = os.getenv("CORS_ORIGINS", "*")
cors_origins = (
    ["*"] if cors_origins_env == "*" else [o.strip() for o in cors_origins_env.split(",")]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(lists_router, prefix="/api")


# ==== DB Startup ====
@app.on_event("startup")
async def converge_db_on_startup():
    """Converge the DB schema and log DB info at startup."""
    db_path = db_module.get_db_path()
    logger.info("=== List Data API Startup ===")
    logger.info(f"DB path: {db_path}")
    results = db_module.ensure_schema(db_path)
    if results.get("tables_created"):
        logger.info(f"Tables created: {results['tables_created']}")


@app.get("/api/health")
async def health():
    """Liveness check."""
    return {"status": "healthy", "schema_version": db_module.SCHEMA_VERSION}


# ==== Main ====


def main():
    """Run the server."""
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)
    port = int(os.environ.get("PORT", 8420))
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
