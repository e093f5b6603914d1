"""
Ingestion entry points.

Document (PDF bytes or decoded positioned-text pages) -> glyph rows ->
ReportManifest -> snapshot reconciliation. Parsing runs in a child process
under a wall-clock limit; the child is killed when the limit expires.
DocumentRejected is raised before any store call is made.
"""

import multiprocessing
from dataclasses import replace
from datetime import timedelta

from .assembler import apply_expected_codes, assemble_report
from .classifier import COMP_REPORT_LAYOUT, SALES_SUMMARY_LAYOUT
from .comp_report import parse_comp_report
from .config import ParserConfig, StoreClientConfig
from .errors import DocumentRejected, IngestTimeout
from .glyphs import group_rows
from .logs import EventLog
from .models import (
    CompIngestResult, CompReport, IngestMetadata, IngestResult, ReportManifest, Source,
)
from .pdf_source import pages_from_json, read_pdf_pages
from .readers import get_expected_performance_codes
from .reconciler import SnapshotReconciler
from .store import WarehouseStore


def document_rows(document, parser_config: ParserConfig) -> list:
    """Group a document's glyphs into rows, page by page."""
    if isinstance(document, (bytes, bytearray)):
        glyph_pages = read_pdf_pages(bytes(document))
        tolerance = parser_config.pdf_y_tolerance
    else:
        glyph_pages = pages_from_json(document)
        tolerance = parser_config.y_tolerance

    return [group_rows(glyphs, tolerance, parser_config.row_mode) for glyphs in glyph_pages]


def parse_document(document, parser_config: ParserConfig | None = None) -> ReportManifest:
    """Parse a sales summary document into a manifest."""
    parser_config = parser_config or ParserConfig()
    try:
        layout = replace(SALES_SUMMARY_LAYOUT, window=parser_config.window)
        return assemble_report(document_rows(document, parser_config), layout)
    except DocumentRejected:
        raise
    except Exception as e:
        raise DocumentRejected(f"Parse failed: {type(e).__name__}: {str(e)}") from e


def parse_comp_document(document, parser_config: ParserConfig | None = None) -> CompReport:
    """Parse a comp ticket document."""
    parser_config = parser_config or ParserConfig()
    try:
        layout = replace(COMP_REPORT_LAYOUT, window=parser_config.window)
        return parse_comp_report(document_rows(document, parser_config), layout)
    except DocumentRejected:
        raise
    except Exception as e:
        raise DocumentRejected(f"Parse failed: {type(e).__name__}: {str(e)}") from e


def run_with_timeout(func, args: tuple, timeout_seconds: float | None):
    """
    Run func(*args) in a child process and kill it after timeout_seconds.

    Runs inline when no timeout is configured.
    """
    if not timeout_seconds:
        return func(*args)

    pool = multiprocessing.get_context("spawn").Pool(processes=1)
    try:
        return pool.apply_async(func, args).get(timeout=timeout_seconds)
    except multiprocessing.TimeoutError as e:
        raise IngestTimeout(f"Parsing exceeded {timeout_seconds:g}s") from e
    finally:
        pool.terminate()
        pool.join()


def ingest_report(document, metadata: IngestMetadata, store: WarehouseStore, config: StoreClientConfig,
                  source: Source = Source.PDF_WEBHOOK, parser_config: ParserConfig | None = None,
                  expected_codes=None, event_log: EventLog | None = None) -> IngestResult:
    """
    Parse one sales summary and merge it into the snapshot table.

    Raises:
        DocumentRejected: the document cannot be ingested at all (no run
        date, no performance rows, unreadable, or parse timeout).
    """
    parser_config = parser_config or ParserConfig()
    log = event_log or EventLog()

    manifest = run_with_timeout(parse_document, (document, parser_config),
                                parser_config.timeout_seconds)

    if expected_codes is None and parser_config.expected_window_days > 0:
        window_end = manifest.report_date + timedelta(days=parser_config.expected_window_days)
        expected_codes = get_expected_performance_codes(store, config, manifest.report_date, window_end)
    if expected_codes is not None:
        apply_expected_codes(manifest, expected_codes)

    log.info(
        f"Parsed {metadata.filename}: {len(manifest.performances)} performances, "
        f"{len(manifest.skipped)} skipped",
        filename=metadata.filename,
        report_date=manifest.report_date.isoformat(),
        performances=len(manifest.performances),
    )
    for skip in manifest.skipped:
        log.warning(f"Skipped {skip.performance_code}: {skip.reason}",
                    performance_code=skip.performance_code, reason=skip.reason,
                    detail=skip.detail, filename=metadata.filename)
    for note in manifest.notes:
        log.info(note, filename=metadata.filename)

    reconciler = SnapshotReconciler(store, config, log)
    reconciliation = reconciler.reconcile_manifest(manifest, source)

    return IngestResult(
        success=not reconciliation.errors,
        manifest=manifest,
        reconciliation=reconciliation,
    )


def ingest_comp_report(document, metadata: IngestMetadata, store: WarehouseStore,
                       config: StoreClientConfig, parser_config: ParserConfig | None = None,
                       event_log: EventLog | None = None) -> CompIngestResult:
    """Parse a comp ticket report and attach counts to latest snapshots."""
    parser_config = parser_config or ParserConfig()
    log = event_log or EventLog()

    report = run_with_timeout(parse_comp_document, (document, parser_config),
                              parser_config.timeout_seconds)

    total_comps = sum(r.comp_tickets for r in report.records)
    log.info(
        f"Parsed {metadata.filename}: {len(report.records)} performances, {total_comps} comp tickets",
        filename=metadata.filename,
        report_date=report.report_date.isoformat(),
    )
    for skip in report.skipped:
        log.warning(f"Skipped {skip.performance_code}: {skip.reason}",
                    performance_code=skip.performance_code, reason=skip.reason,
                    detail=skip.detail, filename=metadata.filename)

    reconciler = SnapshotReconciler(store, config, log)
    sidecar = reconciler.attach_comp_tickets(report)

    return CompIngestResult(success=not sidecar.errors, report=report, sidecar=sidecar)
