"""
Command Line Entry Point

Usage:
    salesreports report --range week --sales data/sales.csv \\
        --products data/products.csv --customers data/customers.csv
    salesreports report --range quarter --export csv --output ./reports
    salesreports serve --port 8000
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

import structlog

from salesreports.config import get_settings
from salesreports.config.logging import configure_logging
from salesreports.exceptions import ReportError
from salesreports.ingestion import FileDataSource
from salesreports.reports import DateRangeKind, ReportExporter, ReportSession

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="salesreports", description="Sales reports for point-of-sale data")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Build a report from exported files")
    report.add_argument(
        "--range",
        dest="range_kind",
        default=settings.reports.default_range,
        choices=[k.value for k in DateRangeKind],
        help="Report window (default: %(default)s)",
    )
    report.add_argument("--sales", default=settings.data_source.sales_path, help="Sales export file")
    report.add_argument("--products", default=settings.data_source.products_path, help="Products export file")
    report.add_argument("--customers", default=settings.data_source.customers_path, help="Customers export file")
    report.add_argument("--format", dest="file_format", default=settings.data_source.file_format,
                        help="Force input format (csv, json, jsonl, parquet)")
    report.add_argument("--limit", type=int, default=None, help="Length of ranked lists")
    report.add_argument("--export", dest="export_format", default=None,
                        help="Write tables as parquet, csv or json instead of printing JSON")
    report.add_argument("--output", default=settings.reports.output_path, help="Export directory")

    serve = subparsers.add_parser("serve", help="Run the reports API")
    serve.add_argument("--host", default=settings.api.host)
    serve.add_argument("--port", type=int, default=settings.api.port)
    serve.add_argument("--dev", action="store_true", help="Enable auto-reload")

    return parser


async def run_report(args: argparse.Namespace) -> int:
    source = FileDataSource(
        sales_path=args.sales,
        products_path=args.products,
        customers_path=args.customers,
        file_format=args.file_format,
    )
    session = ReportSession(source)
    report = await session.build(args.range_kind, limit=args.limit)

    if args.export_format:
        written = ReportExporter(args.output).export(report, args.export_format)
        print(json.dumps(written, indent=2))
    else:
        print(json.dumps(report.to_dict(), indent=2))
    return 0


def run_server(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "salesreports.main:app",
        host=args.host,
        port=args.port,
        reload=args.dev,
        access_log=True,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "serve":
        return run_server(args)

    try:
        return asyncio.run(run_report(args))
    except ReportError as e:
        logger.error("Report failed", error_code=e.error_code, message=e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
