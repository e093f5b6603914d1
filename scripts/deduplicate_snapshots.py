#!/usr/bin/env python3
"""
Remove duplicate snapshot rows.

Historical double-ingestion can leave several rows for the same
(performance_code, snapshot_date). The row with the latest created_at is kept.

Usage:
    python scripts/deduplicate_snapshots.py --dry-run
    python scripts/deduplicate_snapshots.py
"""

import argparse

from boxoffice.config import StoreClientConfig
from boxoffice.logs import EventLog
from boxoffice.reconciler import SnapshotReconciler
from boxoffice.store import BigQueryStore


def main():
    parser = argparse.ArgumentParser(description="Deduplicate performance sales snapshots")
    parser.add_argument("--dry-run", action="store_true", help="Report duplicates without deleting")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args()

    config = StoreClientConfig.from_env()
    reconciler = SnapshotReconciler(BigQueryStore(config), config, EventLog(echo=args.verbose))

    print(f"Scanning {config.project_id}.{config.dataset}.{config.snapshots_table} for duplicates...")
    summary = reconciler.deduplicate_snapshots(dry_run=args.dry_run)

    print(f"Duplicate keys: {summary['duplicate_keys']}")
    if args.dry_run:
        print(f"[DRY RUN] Would delete {summary['deleted']} rows")
    else:
        print(f"Deleted {summary['deleted']} rows")


if __name__ == "__main__":
    main()
