"""CLI entry point for solrdata administrative commands."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solrdata",
        description="solrdata — Administrative commands against a Solr core",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Solr base URL (overrides config)",
    )
    parser.add_argument(
        "--core",
        type=str,
        default=None,
        help="Solr core/collection (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"solrdata {_get_version()}",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ping", help="Check that the core answers")
    count = sub.add_parser("count", help="Count documents matching a query")
    count.add_argument("--q", default="*:*", help="Solr query string (default: all documents)")
    get = sub.add_parser("get", help="Real-time get documents by id")
    get.add_argument("ids", nargs="+")
    commit = sub.add_parser("commit", help="Commit pending updates")
    commit.add_argument("--soft", action="store_true", help="Soft commit (visibility only)")
    sub.add_parser("rollback", help="Discard uncommitted updates")
    delete_id = sub.add_parser("delete-id", help="Delete documents by id")
    delete_id.add_argument("ids", nargs="+")
    delete_query = sub.add_parser("delete-query", help="Delete documents matching a query")
    delete_query.add_argument("q")
    sub.add_parser("schema-name", help="Print the schema name")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    from solrdata.config.settings import Settings
    from solrdata.core.exceptions import SolrDataError
    from solrdata.core.template import SolrTemplate
    from solrdata.observability.logging import setup_logging

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            return 1
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings()

    # Apply CLI overrides
    if args.base_url:
        settings.solr.base_url = args.base_url
    if args.core:
        settings.solr.core = args.core
    if args.log_level:
        settings.observability.log_level = args.log_level

    setup_logging(settings.observability)

    try:
        with SolrTemplate.from_settings(settings) as template:
            result = _run(template, args)
    except SolrDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result is not None:
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    return 0


def _run(template: Any, args: argparse.Namespace) -> Any:
    from solrdata.models.criteria import Criteria
    from solrdata.models.query import SimpleQuery

    if args.command == "ping":
        return template.ping()
    if args.command == "count":
        return {"count": template.count(SimpleQuery(criteria=Criteria.raw(args.q)))}
    if args.command == "get":
        return template.get_by_ids(args.ids, dict)
    if args.command == "commit":
        if args.soft:
            template.soft_commit()
        else:
            template.commit()
        return {"status": "committed"}
    if args.command == "rollback":
        template.rollback()
        return {"status": "rolled back"}
    if args.command == "delete-id":
        return template.delete_by_id(args.ids)
    if args.command == "delete-query":
        return template.delete(SimpleQuery(criteria=Criteria.raw(args.q)))
    if args.command == "schema-name":
        return {"name": template.get_schema_name()}
    raise ValueError(f"Unknown command: {args.command}")


def _get_version() -> str:
    """Get the package version."""
    try:
        from solrdata import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    sys.exit(main())
