#!/usr/bin/env python3
"""
Attach comp ticket counts from PTC report PDFs to the latest snapshots.

Usage:
    python scripts/import_comp_tickets.py reports/ptc_2025-10-20.pdf --dry-run
    python scripts/import_comp_tickets.py reports/ptc_*.pdf
"""

import argparse
import sys
from pathlib import Path

from boxoffice.config import StoreClientConfig
from boxoffice.errors import DocumentRejected
from boxoffice.ingest import ingest_comp_report, parse_comp_document
from boxoffice.logs import EventLog
from boxoffice.models import IngestMetadata
from boxoffice.store import BigQueryStore


def main():
    parser = argparse.ArgumentParser(description="Import comp tickets from PTC report PDFs")
    parser.add_argument("pdf_paths", nargs="+", help="PTC report PDFs")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, don't update BigQuery")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args()

    config = StoreClientConfig.from_env()
    store = None if args.dry_run else BigQueryStore(config)
    failed = False

    for pdf_path in args.pdf_paths:
        path = Path(pdf_path)
        if not path.exists():
            print(f"Error: File not found: {pdf_path}", file=sys.stderr)
            failed = True
            continue

        try:
            if args.dry_run:
                report = parse_comp_document(path.read_bytes())
                print(f"{path.name}: {report.report_date}, {len(report.records)} performances, "
                      f"{sum(r.comp_tickets for r in report.records)} comps")
                if args.verbose:
                    for record in report.records:
                        print(f"  {record.performance_code}: {record.comp_tickets}")
                continue

            result = ingest_comp_report(path.read_bytes(), IngestMetadata(filename=path.name),
                                        store, config, event_log=EventLog(echo=args.verbose))
        except DocumentRejected as e:
            print(f"Rejected {path.name}: {e.reason}", file=sys.stderr)
            failed = True
            continue

        print(f"{path.name}: {result.sidecar.updated} updated, "
              f"{len(result.sidecar.not_found)} not found, {len(result.sidecar.errors)} errors")
        if args.verbose and result.sidecar.not_found:
            print(f"  Not found: {', '.join(result.sidecar.not_found)}")
        failed = failed or not result.success

    if args.dry_run:
        print("[DRY RUN] Nothing written to BigQuery")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
