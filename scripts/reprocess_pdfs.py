#!/usr/bin/env python3
"""
Re-run historical sales summary PDFs through the pipeline.

This script:
1. Collects PDFs from a local directory or a gs://bucket/prefix
2. Parses them in parallel (one process per document)
3. Reconciles manifests one at a time in report-date order

With --source pdf_reprocess (default) existing snapshots for the same
performance and date are replaced; with historical_pdf_import only missing
dates are filled in.

Usage:
    # Dry run - parse all, show summary
    python scripts/reprocess_pdfs.py --pdf-dir pdfs/ --dry-run

    # Reprocess everything in the backup bucket for October
    python scripts/reprocess_pdfs.py --gcs gs://symphony-dashboard-pdfs/2025/10/

    # Fill gaps only
    python scripts/reprocess_pdfs.py --pdf-dir pdfs/ --source historical_pdf_import
"""

import argparse
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from glob import glob
from pathlib import Path

from google.cloud import storage

from boxoffice.config import ParserConfig, StoreClientConfig
from boxoffice.errors import DocumentRejected
from boxoffice.ingest import parse_document
from boxoffice.logs import EventLog
from boxoffice.models import Source
from boxoffice.reconciler import SnapshotReconciler
from boxoffice.store import BigQueryStore


def local_documents(pdf_dir: str) -> dict[str, bytes]:
    files = sorted(glob(str(Path(pdf_dir) / "*.pdf")))
    return {Path(f).name: Path(f).read_bytes() for f in files}


def gcs_documents(uri: str, project_id: str) -> dict[str, bytes]:
    """Download every PDF under gs://bucket/prefix."""
    bucket_name, _, prefix = uri.removeprefix("gs://").partition("/")
    client = storage.Client(project=project_id)
    documents = {}
    for blob in client.list_blobs(bucket_name, prefix=prefix):
        if blob.name.lower().endswith(".pdf"):
            documents[blob.name] = blob.download_as_bytes()
    return documents


def parse_all(documents: dict[str, bytes], parser_config: ParserConfig, workers: int, verbose: bool):
    """Parse documents in parallel. Returns (manifests by name, failures by name)."""
    manifests, failures = {}, {}
    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = {
            pool.submit(parse_document, pdf_bytes, parser_config): name
            for name, pdf_bytes in documents.items()
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                manifests[name] = future.result()
            except DocumentRejected as e:
                failures[name] = e.reason
                continue
            if verbose:
                manifest = manifests[name]
                print(f"  {name}: {manifest.report_date} "
                      f"{len(manifest.performances)} performances, {len(manifest.skipped)} skipped")
    return manifests, failures


def main():
    parser = argparse.ArgumentParser(description="Reprocess sales summary PDFs into snapshots")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--pdf-dir", help="Directory containing sales summary PDFs")
    group.add_argument("--gcs", help="gs://bucket/prefix holding PDFs")
    parser.add_argument("--source", choices=[s.value for s in Source], default=Source.PDF_REPROCESS.value,
                        help="Snapshot source label (default: pdf_reprocess)")
    parser.add_argument("--workers", type=int, default=4, help="Parallel parse processes (default: 4)")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, don't write to BigQuery")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args()

    store_config = StoreClientConfig.from_env()
    parser_config = ParserConfig(timeout_seconds=None)

    if args.pdf_dir:
        print(f"Scanning {args.pdf_dir} for PDFs...")
        documents = local_documents(args.pdf_dir)
    else:
        print(f"Listing {args.gcs}...")
        documents = gcs_documents(args.gcs, store_config.project_id)

    if not documents:
        print("No PDF files found!", file=sys.stderr)
        sys.exit(1)

    print(f"Found {len(documents)} PDF files, parsing with {args.workers} workers")
    manifests, failures = parse_all(documents, parser_config, args.workers, args.verbose)

    for name, reason in sorted(failures.items()):
        print(f"Rejected {name}: {reason}", file=sys.stderr)

    print()
    print("=" * 50)
    print("Parse summary")
    print("=" * 50)
    print(f"Parsed: {len(manifests)}")
    print(f"Rejected: {len(failures)}")
    print(f"Performances: {sum(len(m.performances) for m in manifests.values())}")
    print(f"Skipped rows: {sum(len(m.skipped) for m in manifests.values())}")

    if args.dry_run:
        print()
        print("[DRY RUN] Nothing written to BigQuery")
        return

    reconciler = SnapshotReconciler(BigQueryStore(store_config), store_config, EventLog(echo=args.verbose))
    totals = {"inserted": 0, "updated": 0, "rejected": 0, "errors": 0}

    # One report at a time keeps writes for a key serialized
    for name, manifest in sorted(manifests.items(), key=lambda item: (item[1].report_date, item[0])):
        result = reconciler.reconcile_manifest(manifest, Source(args.source))
        totals["inserted"] += result.inserted
        totals["updated"] += result.updated
        totals["rejected"] += result.rejected
        totals["errors"] += len(result.errors)
        print(f"{manifest.report_date} {name}: +{result.inserted} ~{result.updated} "
              f"={result.rejected} !{len(result.errors)}")
        for error in result.errors:
            print(f"  ERROR {error.code}: {error.reason}", file=sys.stderr)

    print()
    print(f"Done: {totals['inserted']} inserted, {totals['updated']} updated, "
          f"{totals['rejected']} rejected, {totals['errors']} errors")
    if totals["errors"] or failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
