#!/usr/bin/env python3
"""
Create the snapshot and pipeline log tables if they do not exist.

Usage:
    python scripts/create_tables.py --dry-run
    python scripts/create_tables.py
"""

import argparse

from boxoffice.config import StoreClientConfig
from boxoffice.store import BigQueryStore


def table_ddl(config: StoreClientConfig) -> list[str]:
    prefix = f"`{config.project_id}.{config.dataset}"
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {prefix}.{config.snapshots_table}` (
            snapshot_id STRING NOT NULL,
            performance_code STRING NOT NULL,
            snapshot_date DATE NOT NULL,
            budget_percent FLOAT64,
            fixed_tickets INT64,
            fixed_revenue FLOAT64,
            non_fixed_tickets INT64,
            non_fixed_revenue FLOAT64,
            single_tickets INT64,
            single_revenue FLOAT64,
            reserved_tickets INT64,
            reserved_revenue FLOAT64,
            other_tickets INT64,
            other_revenue FLOAT64,
            subtotal_revenue FLOAT64,
            total_revenue FLOAT64,
            total_tickets_sold INT64,
            available_seats INT64,
            capacity_percent FLOAT64,
            comp_tickets INT64,
            source STRING,
            created_at TIMESTAMP
        )
        CLUSTER BY performance_code, snapshot_date
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {prefix}.{config.import_log_table}` (
            execution_id STRING NOT NULL,
            pipeline_type STRING,
            status STRING,
            start_time TIMESTAMP,
            end_time TIMESTAMP,
            source_file STRING,
            report_date DATE,
            records_processed INT64,
            records_inserted INT64,
            records_updated INT64,
            records_rejected INT64,
            error_message STRING
        )
        """,
    ]


def main():
    parser = argparse.ArgumentParser(description="Create snapshot pipeline tables")
    parser.add_argument("--dry-run", action="store_true", help="Print DDL without running it")

    args = parser.parse_args()

    config = StoreClientConfig.from_env()
    statements = table_ddl(config)

    if args.dry_run:
        for sql in statements:
            print(sql)
        return

    store = BigQueryStore(config)
    for sql in statements:
        store.query(sql)
    print(f"Tables ready in {config.project_id}.{config.dataset}")


if __name__ == "__main__":
    main()
