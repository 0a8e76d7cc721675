"""
Cron task handlers for the list engine.

Called by the scheduler (or GET /api/cron/sync-github-lists):
- sync_github_lists: full resync of every GitHub-backed list (every 15 min)

A failing list is logged and recorded; the run carries on with the next one.
Retrying is simply the next scheduled run, since cache upserts are idempotent.
"""

import logging

from listdata.errors import ListDataError
from listdata.service import ListDataService

logger = logging.getLogger(__name__)


def cron_sync_github_lists(service: ListDataService | None = None) -> dict:
    """
    Resync the issue cache of every GitHub list.

    Returns:
        {"lists_synced", "issues_synced", "results": {list_id: count},
         "errors": [{"list_id", "error", "transient"}]}
    """
    service = service or ListDataService()
    lists = service.store.list_github_lists()
    logger.info("Starting GitHub list sync for %d lists", len(lists))

    results: dict[str, int] = {}
    errors: list[dict] = []

    for list_record in lists:
        list_id = list_record["id"]
        try:
            results[list_id] = service.refresh(list_id)
        except ListDataError as e:
            errors.append(
                {
                    "list_id": list_id,
                    "github_repo": list_record["github_repo"],
                    "error": str(e),
                    "transient": getattr(e, "transient", False),
                }
            )
            logger.error("GitHub sync failed for list %s (%s): %s", list_id, list_record["github_repo"], e)

    summary = {
        "lists_synced": len(results),
        "issues_synced": sum(results.values()),
        "results": results,
        "errors": errors,
    }
    logger.info(
        "GitHub list sync complete: %d lists, %d issues, %d errors",
        summary["lists_synced"],
        summary["issues_synced"],
        len(errors),
    )
    return summary


def get_cron_config() -> dict:
    """Schedule for the list engine's cron jobs."""
    return {
        "sync_github_lists": {
            "schedule": "*/15 * * * *",  # every 15 minutes
            "timezone": "UTC",
            "task": "Resync GitHub issue caches",
            "handler": "cron_sync_github_lists",
            "endpoint": "/api/cron/sync-github-lists",
        },
    }


def format_sync_report(results: dict) -> str:
    """Format sync results for notification."""
    lines = ["**GitHub List Sync Complete**", ""]
    lines.append(f"Synced {results['issues_synced']} issues across {results['lists_synced']} lists")
    for err in results.get("errors", []):
        lines.append(f"FAILED {err['list_id']} ({err['github_repo']}): {err['error']}")
    return "\n".join(lines)
