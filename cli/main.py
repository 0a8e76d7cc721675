#!/usr/bin/env python3
"""List Data CLI

Commands:
- init                    create the data directory and converge the DB
- check-schema FILE       report every problem in a schema document
- create-list FILE        create a list from a schema document
- sync LIST_ID            resync one GitHub list
- sync-all                resync every GitHub list (cron entry point)
- query LIST_ID           filter / sort / page a list's rows
"""

import argparse
import json
import sys

from listdata import config, paths
from listdata import db as db_module
from listdata.cron_tasks import cron_sync_github_lists, format_sync_report
from listdata.dsl.parser import load_schema_document, validate_schema_document
from listdata.errors import ListDataError
from listdata.observability import RequestContext, configure_logging
from listdata.query import PaginationParams, QueryParams, SortSpec
from listdata.service import ListDataService
from listdata.store import ListStore


def _service(args) -> ListDataService:
    return ListDataService(store=ListStore(args.db) if args.db else None, access_token=args.token)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_init(args) -> int:
    db_path = args.db or db_module.get_db_path()
    print(f"Data directory: {paths.data_dir()}")
    results = db_module.ensure_schema(db_path)
    if results.get("tables_created"):
        print(f"Tables created: {', '.join(results['tables_created'])}")
    info = db_module.get_db_info(db_path)
    print(f"OK: {info['resolved_db_path']} (schema v{info['user_version']})")
    return 0


def cmd_check_schema(args) -> int:
    report = validate_schema_document(load_schema_document(args.file))
    if args.json:
        _print_json(report.to_dict())
    else:
        status = "valid" if report.is_valid else "INVALID"
        print(
            f"{args.file}: {status} ({report.field_count} fields, "
            f"{report.required_field_count} required, "
            f"{report.conditional_field_count} conditional)"
        )
        for err in report.errors:
            where = f" [{err['field']}]" if err["field"] else ""
            print(f"  error {err['code']}{where}: {err['message']}")
        for warning in report.warnings:
            print(f"  warning: {warning}")
    return 0 if report.is_valid else 1


def cmd_create_list(args) -> int:
    created = _service(args).create_list(
        load_schema_document(args.file), github_repo=args.github_repo
    )
    print(f"OK: created list {created['id']} ({created['name']}, {created['source']})")
    return 0


def cmd_sync(args) -> int:
    synced = _service(args).refresh(args.list_id)
    print(f"OK: synced {synced} issues into list {args.list_id}")
    return 0


def cmd_sync_all(args) -> int:
    results = cron_sync_github_lists(_service(args))
    if args.json:
        _print_json(results)
    else:
        print(format_sync_report(results))
    return 1 if results["errors"] else 0


def _parse_filters(items: list[str]) -> dict[str, str]:
    filters = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise SystemExit(f"Invalid filter {item!r}; expected key=value")
        filters[key] = value
    return filters


def cmd_query(args) -> int:
    params = QueryParams(
        filter=_parse_filters(args.filter),
        sort=SortSpec(field=args.sort, order=args.order) if args.sort else None,
        pagination=PaginationParams(limit=args.limit, offset=args.offset, page=args.page),
    )
    result = _service(args).get_rows(args.list_id, params)
    _print_json(result.model_dump())
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="listdata", description="List definition and data engine")
    p.add_argument("--db", default=None, help="SQLite path (default: LISTDATA_DB or ~/.listdata)")
    p.add_argument("--token", default=None, help="GitHub token (default: GITHUB_TOKEN)")
    p.add_argument("--log-level", default=config.LOG_LEVEL)
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init").set_defaults(func=cmd_init)

    c = sub.add_parser("check-schema")
    c.add_argument("file", help="Schema document (.json, .yaml, .yml)")
    c.add_argument("--json", action="store_true", help="Print the report as JSON")
    c.set_defaults(func=cmd_check_schema)

    cl = sub.add_parser("create-list")
    cl.add_argument("file", help="Schema document (.json, .yaml, .yml)")
    cl.add_argument("--github-repo", default=None, help="owner/name of a backing repository")
    cl.set_defaults(func=cmd_create_list)

    s = sub.add_parser("sync")
    s.add_argument("list_id")
    s.set_defaults(func=cmd_sync)

    sa = sub.add_parser("sync-all")
    sa.add_argument("--json", action="store_true")
    sa.set_defaults(func=cmd_sync_all)

    q = sub.add_parser("query")
    q.add_argument("list_id")
    q.add_argument("--filter", action="append", default=[], metavar="KEY=VALUE")
    q.add_argument("--sort", default=None, help="Field to sort by")
    q.add_argument("--order", choices=["asc", "desc"], default="asc")
    q.add_argument("--page", type=int, default=None)
    q.add_argument("--limit", type=int, default=None)
    q.add_argument("--offset", type=int, default=None)
    q.set_defaults(func=cmd_query)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, config.LOG_JSON)

    with RequestContext():
        try:
            return args.func(args)
        except (ListDataError, OSError) as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())
