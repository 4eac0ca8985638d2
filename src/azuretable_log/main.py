#!/usr/bin/env python3
"""
Command-line interface for the Azure Table log handler.

Ensures the log table exists, writes test entries and queries or exports
stored entries using the credentials from Config.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from azure.core.exceptions import AzureError

from azuretable_log.config import Config
from azuretable_log.exceptions import AzureTableLogError
from azuretable_log.handler import AzureTableHandler

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Set up logging configuration."""
    log_level = getattr(logging, level.upper())
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_handler(args) -> AzureTableHandler:
    """Create a handler from Config, applying command-line overrides."""
    return AzureTableHandler.from_config(
        table_name=args.table, partition_key=args.partition_key
    )


def ensure_table(args) -> None:
    """Make sure the configured table exists."""
    handler = build_handler(args)
    try:
        print(f"✅ Table '{handler.table_name}' is ready (partition '{handler.partition_key}')")
    finally:
        handler.close()


def write_entry(args) -> None:
    """Write a single log entry."""
    meta = json.loads(args.meta) if args.meta else None
    if meta is not None and not isinstance(meta, dict):
        raise ValueError("--meta must be a JSON object")

    handler = build_handler(args)
    try:
        row_key = handler.log(args.level, args.message, meta)
        print(f"📝 Logged entry {row_key} to '{handler.table_name}'")
    finally:
        handler.close()


def export_frame(df, output_path: Path) -> None:
    """Write query results to parquet, csv or json based on the file suffix."""
    suffix = output_path.suffix.lower()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".parquet":
        df.to_parquet(output_path, engine="pyarrow", compression="zstd", index=False)
    elif suffix == ".csv":
        df.to_csv(output_path, index=False)
    elif suffix == ".json":
        df.to_json(output_path, orient="records", date_format="iso")
    else:
        raise ValueError(f"Unsupported output format: {suffix}")


def query_entries(args) -> None:
    """Query stored entries and print or export them."""
    options = {"order": args.order}
    if args.fields:
        options["fields"] = args.fields
    if args.limit:
        options["limit"] = args.limit

    handler = build_handler(args)
    try:
        df = handler.query_frame(options)
    finally:
        handler.close()

    if df.empty:
        print(f"📭 No entries found in '{args.table or Config.TABLE_NAME}'")
        return

    if args.output:
        output_path = Path(args.output)
        export_frame(df, output_path)
        print(f"💾 Exported {len(df)} entries to {output_path}")
        return

    print(f"📋 {len(df)} entries:")
    print(df.to_string(index=False))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Write and query Azure Table log entries")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL, help="Console log level")
    parser.add_argument("--table", help="Table name (default: AZURE_TABLE_LOG_TABLE)")
    parser.add_argument(
        "--partition-key", help="Partition key (default: AZURE_TABLE_LOG_PARTITION_KEY)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Ensure table
    ensure_parser = subparsers.add_parser(
        "ensure-table", help="Create the log table if it does not exist"
    )
    ensure_parser.set_defaults(func=ensure_table)

    # Write entry
    log_parser = subparsers.add_parser("log", help="Write a log entry")
    log_parser.add_argument("level", help="Level name, e.g. info")
    log_parser.add_argument("message", help="Log message")
    log_parser.add_argument("--meta", help="Metadata as a JSON object")
    log_parser.set_defaults(func=write_entry)

    # Query entries
    query_parser = subparsers.add_parser("query", help="Query stored log entries")
    query_parser.add_argument("--fields", nargs="+", help="Columns to return")
    query_parser.add_argument("--limit", type=int, help="Limit number of results")
    query_parser.add_argument(
        "--order", choices=["asc", "desc"], default="asc", help="Row key order"
    )
    query_parser.add_argument(
        "--output", help="Export to a .parquet, .csv or .json file instead of printing"
    )
    query_parser.set_defaults(func=query_entries)

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        args.func(args)
    except (AzureTableLogError, AzureError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"❌ {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
