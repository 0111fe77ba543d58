#!/usr/bin/env python3
"""Convert an invoice CSV to USD and write the FX report.

Reads a sheet with columns Client, Invoice_Amount, Currency, Invoice_Date,
Due_Date and optionally Payment_Date, Payment_Amount; converts every amount
with historical rates; writes the report CSV and prints headline figures.

Usage:
    python scripts/process_invoices.py invoices.csv
    python scripts/process_invoices.py invoices.csv -o report.csv --as-of 2024-03-01
    python scripts/process_invoices.py --sample > sample_invoices.csv

Environment:
    APP_FX_PROVIDER=static   use the offline rate table instead of Frankfurter
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from services.ingest.csv_parser import SAMPLE_CSV, CSVValidationError, parse_invoice_csv
from services.invoices.pipeline import process_invoices
from services.reporting.export import export_invoices_csv
from services.reporting.summary import ReportSummary, build_report_summary
from services.shared.config import get_settings

logger = logging.getLogger(__name__)


def print_summary(summary: ReportSummary) -> None:
    """Print headline figures to stderr so stdout can carry the report."""
    kpis = summary.kpis
    out = sys.stderr
    print("=" * 60, file=out)
    print("FX INVOICE SUMMARY", file=out)
    print("=" * 60, file=out)
    print(
        f"Total outstanding:  ${kpis.total_outstanding:,.2f} ({kpis.outstanding_count} invoice(s))",
        file=out,
    )
    print(f"FX gains/losses:    ${kpis.total_fx_gain_loss:,.2f}", file=out)
    print(f"Currencies:         {kpis.currency_count}", file=out)
    print(f"Overdue:            {kpis.overdue_count}", file=out)
    if kpis.estimated_count:
        print(
            f"WARNING: {kpis.estimated_count} invoice(s) converted with a fallback rate of 1",
            file=out,
        )

    print("\nAging (unpaid, USD):", file=out)
    for bucket in summary.aging:
        print(f"  {bucket.period:<12} {bucket.amount:>14,.2f}", file=out)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Convert invoices to USD and export FX report")
    parser.add_argument("csv_path", type=Path, nargs="?", help="Invoice CSV file")
    parser.add_argument("-o", "--output", type=Path, help="Report path (default: stdout)")
    parser.add_argument(
        "--as-of", type=date.fromisoformat, help="Reference date YYYY-MM-DD (default: today)"
    )
    parser.add_argument("--sample", action="store_true", help="Print a sample input CSV and exit")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(message)s")

    if args.sample:
        sys.stdout.write(SAMPLE_CSV)
        return 0

    if args.csv_path is None:
        parser.error("csv_path is required unless --sample is given")

    if not args.csv_path.exists():
        logger.error(f"CSV file not found: {args.csv_path}")
        return 1

    try:
        rows = parse_invoice_csv(args.csv_path.read_bytes())
    except CSVValidationError as e:
        logger.error(str(e))
        return 1

    invoices = process_invoices(rows, settings=settings, today=args.as_of)
    report = export_invoices_csv(invoices)

    if args.output:
        args.output.write_text(report + "\n", encoding="utf-8")
        logger.info(f"Wrote {len(invoices)} invoice(s) to {args.output}")
    else:
        sys.stdout.write(report + "\n")

    print_summary(build_report_summary(invoices))
    return 0


if __name__ == "__main__":
    sys.exit(main())
