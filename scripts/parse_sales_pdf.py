#!/usr/bin/env python3
"""
Parse a box-office sales summary PDF and print what the pipeline would ingest.

Usage:
    # Manifest summary plus one NDJSON record per performance
    python scripts/parse_sales_pdf.py reports/sales_summary_2025-10-20.pdf

    # Dump grouped rows for layout debugging
    python scripts/parse_sales_pdf.py report.pdf --dump-rows

    # Compare legacy row bucketing
    python scripts/parse_sales_pdf.py report.pdf --row-mode anchor -o records.json
"""

import argparse
import json
import sys
from pathlib import Path

from boxoffice.config import ParserConfig
from boxoffice.errors import DocumentRejected
from boxoffice.ingest import document_rows, parse_document


def output_ndjson(records: list[dict], output_path: str | None = None):
    """Output records as NDJSON to file or stdout."""
    if output_path:
        with open(output_path, 'w') as f:
            for record in records:
                f.write(json.dumps(record) + "\n")
        print(f"Wrote {len(records)} records to {output_path}", file=sys.stderr)
    else:
        for record in records:
            print(json.dumps(record))


def dump_rows(pdf_bytes: bytes, parser_config: ParserConfig):
    for page_number, rows in enumerate(document_rows(pdf_bytes, parser_config), start=1):
        print(f"=== Page {page_number} ({len(rows)} rows) ===")
        for row in rows:
            print(f"{row.y:8.2f} | " + " | ".join(row.texts()))


def main():
    parser = argparse.ArgumentParser(
        description="Parse a sales summary PDF and output performance records as NDJSON"
    )
    parser.add_argument("pdf_path", help="Path to the sales summary PDF")
    parser.add_argument("-o", "--output", help="Output file path (default: stdout)")
    parser.add_argument("--row-mode", choices=["cluster", "anchor"], default="cluster",
                        help="Row grouping mode (default: cluster)")
    parser.add_argument("--dump-rows", action="store_true", help="Print grouped rows and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args()

    path = Path(args.pdf_path)
    if not path.exists():
        print(f"Error: File not found: {args.pdf_path}", file=sys.stderr)
        sys.exit(1)

    pdf_bytes = path.read_bytes()
    parser_config = ParserConfig(row_mode=args.row_mode, timeout_seconds=None)

    if args.dump_rows:
        dump_rows(pdf_bytes, parser_config)
        return

    try:
        manifest = parse_document(pdf_bytes, parser_config)
    except DocumentRejected as e:
        print(f"Rejected: {e.reason}", file=sys.stderr)
        sys.exit(1)

    print(f"Report date: {manifest.report_date}", file=sys.stderr)
    print(f"Performances: {len(manifest.performances)}", file=sys.stderr)
    for skip in manifest.skipped:
        print(f"  SKIPPED {skip.performance_code}: {skip.reason} {skip.detail}", file=sys.stderr)
    for warning in manifest.warnings:
        print(f"  WARNING {warning.performance_code}: {warning.message}", file=sys.stderr)
    if args.verbose:
        for note in manifest.notes:
            print(f"  NOTE {note}", file=sys.stderr)

    records = [
        {"snapshot_date": manifest.report_date.isoformat(), **record.model_dump()}
        for record in manifest.performances
    ]
    output_ndjson(records, args.output)


if __name__ == "__main__":
    main()
