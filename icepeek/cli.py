#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Command line entry point.

Usage:
    icepeek open ./warehouse/db/events                  # table directory
    icepeek open s3://bucket/t/metadata/v3.metadata.json
    icepeek open ./t -c id,name -l 1000                 # projection and page size
    icepeek catalog --uri http://localhost:8181 --table db.events
"""

import argparse
import sys
from typing import List, Optional

from ._version import __version__
from .config import StorageConfig
from .models import LoadCommand


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def _column_list(value: str) -> List[str]:
    return [c.strip() for c in value.split(",") if c.strip()]


def _add_view_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--columns", "-c", type=_column_list, help="Comma-separated columns to fetch"
    )
    limits = parser.add_mutually_exclusive_group()
    limits.add_argument(
        "--limit", "-l", type=_positive_int, help="Rows per page (default 500)"
    )
    limits.add_argument(
        "--no-limit", action="store_true", help="Fetch every row on the first scan"
    )

    storage = parser.add_argument_group("storage")
    storage.add_argument("--s3-endpoint", help="S3-compatible endpoint (env S3_ENDPOINT)")
    storage.add_argument("--s3-region", help="S3 region (env AWS_REGION, default us-east-1)")
    storage.add_argument("--s3-access-key-id", help="Access key (env AWS_ACCESS_KEY_ID)")
    storage.add_argument(
        "--s3-secret-access-key", help=argparse.SUPPRESS
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="icepeek",
        description="icepeek - browse Apache Iceberg tables in the terminal",
    )
    parser.add_argument(
        "--version", action="version", version=f"icepeek {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    open_parser = subparsers.add_parser(
        "open", help="Open a table from its directory or metadata JSON file"
    )
    open_parser.add_argument("path", help="Table location or metadata file (local, s3://, gs://)")
    _add_view_options(open_parser)

    catalog_parser = subparsers.add_parser("catalog", help="Open a table from a REST catalog")
    catalog_parser.add_argument("--uri", required=True, help="REST catalog URI")
    catalog_parser.add_argument(
        "--table", "-t", required=True, help="Fully qualified table name (namespace.table)"
    )
    _add_view_options(catalog_parser)

    return parser


def build_command(args: argparse.Namespace) -> LoadCommand:
    """Turn parsed arguments into a LoadCommand."""
    storage = StorageConfig.resolve(
        endpoint=args.s3_endpoint,
        region=args.s3_region,
        access_key_id=args.s3_access_key_id,
        secret_access_key=args.s3_secret_access_key,
    )
    command = LoadCommand(
        columns=args.columns or None,
        limit=args.limit,
        no_limit=args.no_limit,
        storage=storage,
    )
    if args.command == "catalog":
        command.catalog_uri = args.uri
        command.table_name = args.table
    else:
        command.metadata_path = args.path
    return command


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    if args.command == "catalog" and "." not in args.table.strip("."):
        parser.error("table name must be fully qualified (e.g., 'database.table')")

    command = build_command(args)

    from .tui.app import run_app

    run_app(command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
