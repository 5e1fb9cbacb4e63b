"""Export Job

Fetches one account's trading activity, narrows it with the table filters
and writes the tax-tool CSV.

The job:
1. Reads configuration from config/exporter_config.json
2. Dispatches the query (real provider or synthetic fallback)
3. Applies date / asset / side / search filters
4. Prints a summary and saves <type>-export-<wallet[:8]>.csv to the export folder

Usage:
    python -m tax_exporter.jobs.export_job --wallet <address> --chain solana --type spot

Web layers mount the same dispatch behind the transactions query contract
instead: tax_exporter.pipelines.query_handler.handle_query(params, dispatcher)
returns (status, body) for ?wallet=&chain=&type=&mock= requests.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from tax_exporter.core.errors import FetchError
from tax_exporter.core.models import SPOT, PERP
from tax_exporter.core.sources import DEFAULT_SOURCE, SOURCES
from tax_exporter.data.dispatcher import TransactionDispatcher
from tax_exporter.helpers.csv_export import export_to_file
from tax_exporter.helpers.filters import ALL, DATE_WINDOWS, apply_filters, summarize
from tax_exporter.utils.config import DEFAULT_CONFIG_PATH, ExporterConfig
from tax_exporter.utils.logger import setup_logger


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export wallet trading activity to a tax CSV.")
    parser.add_argument("--wallet", required=True, help="Wallet address or exchange account")
    parser.add_argument("--chain", default=DEFAULT_SOURCE, choices=sorted(SOURCES), help="Chain or perp venue")
    parser.add_argument("--type", dest="record_type", default=None, choices=[SPOT, PERP])
    parser.add_argument("--mock", action="store_true", help="Force synthetic data")
    parser.add_argument("--date", default=None, choices=[ALL, *DATE_WINDOWS])
    parser.add_argument("--asset", default=ALL)
    parser.add_argument("--side", default=ALL)
    parser.add_argument("--search", default="")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH))
    parser.add_argument("--output", default=None, help="Override the export folder")
    return parser.parse_args(argv)


def format_summary(summary: dict) -> list[str]:
    lines = []
    for key, value in summary.items():
        label = key.replace("_", " ").title()
        if isinstance(value, float):
            lines.append(f"  {label:20s}: {value:,.2f}")
        else:
            lines.append(f"  {label:20s}: {value}")
    return lines


def run_export_job(args: argparse.Namespace, config: ExporterConfig, logger: logging.Logger) -> Optional[Path]:
    """Run one export. Returns the CSV path, or None when nothing matched."""
    export_cfg = config.section("export")
    record_type = args.record_type or export_cfg.get("record_type") or SOURCES[args.chain].record_type
    date_filter = args.date or export_cfg.get("date_filter", ALL)

    dispatcher = TransactionDispatcher(config, logger=logger)
    result = dispatcher.dispatch(args.wallet, args.chain, record_type, force_mock=args.mock)
    if result.fallback:
        logger.warning(f"Showing synthetic data ({result.fallback_reason})")

    records = apply_filters(
        result.records,
        date=date_filter,
        asset=args.asset,
        side=args.side,
        search=args.search,
    )
    logger.info(f"{len(records)}/{len(result.records)} records after filters")

    if not records:
        print("No transactions found")
        return None

    print("Summary:")
    for line in format_summary(summarize(records, record_type)):
        print(line)

    folder = Path(args.output) if args.output else config.data_path("export_folder", "data/exports")
    path = export_to_file(records, record_type, args.wallet, folder)
    logger.info(f"Saved {len(records)} records to {path}")
    return path


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the export job."""
    args = parse_args(argv)
    config = ExporterConfig.from_file(args.config)

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    log_path = config.data_path("log_path", "logs") / "export_job.log"
    logger = setup_logger("export_job", log_path, level=log_level)

    logger.info("========== Export Job starting ==========")
    logger.info(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    try:
        run_export_job(args, config, logger)
    except FetchError as exc:
        logger.error(f"Export failed: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
