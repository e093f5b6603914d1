"""
Report-level assembly.

Runs the classifier and segmenter over every page, extracts the report's
run date and folds per-page results into one ReportManifest.
"""

import re
from datetime import date

from .classifier import SALES_SUMMARY_LAYOUT, RowLayout, classify_rows
from .errors import DocumentRejected, SegmentationError
from .glyphs import page_text
from .models import (
    NOT_FOUND_IN_REPORT, SEGMENTATION_FAILED, ParsedSalesRecord, ReportManifest, Row, RowSkip,
)
from .segmenter import DEFAULT_PROFILES, segment_data_blob

RUN_DATE_PATTERN = re.compile(r'Run by\s+.+?\s+on\s+(\d{1,2})/(\d{1,2})/(\d{4})')


def extract_report_date(page_texts: list[str]) -> date | None:
    """First 'Run by <name> on M/D/YYYY' in the document, or None."""
    for text in page_texts:
        for match in RUN_DATE_PATTERN.finditer(text):
            month, day, year = (int(g) for g in match.groups())
            try:
                return date(year, month, day)
            except ValueError:
                continue
    return None


def apply_expected_codes(manifest: ReportManifest, expected_codes) -> ReportManifest:
    """Add a not_found_in_report skip for every expected code the report lacks."""
    parsed = {r.performance_code for r in manifest.performances}
    skipped = set(manifest.skipped_codes)
    for code in sorted(set(expected_codes)):
        if code not in parsed and code not in skipped:
            manifest.skipped.append(RowSkip(performance_code=code, reason=NOT_FOUND_IN_REPORT))
    return manifest


def assemble_report(pages: list[list[Row]], layout: RowLayout = SALES_SUMMARY_LAYOUT,
                    profiles=DEFAULT_PROFILES, expected_codes=None) -> ReportManifest:
    """
    Build a manifest from grouped rows of every page.

    Raises:
        DocumentRejected: no run date, or no performance codes at all.
    """
    texts = [page_text(rows) for rows in pages]
    report_date = extract_report_date(texts)
    if report_date is None:
        raise DocumentRejected("No 'Run by ... on M/D/YYYY' run date found")

    records: dict[str, ParsedSalesRecord] = {}
    skips: dict[str, RowSkip] = {}
    warnings = {}
    notes = []
    codes_seen = 0

    for page_number, (rows, text) in enumerate(zip(pages, texts), start=1):
        perf_rows, page_skips = classify_rows(rows, layout, page_number)
        codes_seen += len(perf_rows) + len(page_skips)

        for skip in page_skips:
            skips.setdefault(skip.performance_code, skip)

        for perf_row in perf_rows:
            code = perf_row.performance_code
            try:
                result = segment_data_blob(perf_row.data_blob, code, profiles, labels=text)
            except SegmentationError as e:
                skips.setdefault(code, RowSkip(
                    performance_code=code,
                    reason=SEGMENTATION_FAILED,
                    detail=e.reason,
                    page_number=page_number,
                ))
                continue

            record = result.record.model_copy(update={
                "performance_datetime_text": perf_row.date_time_text,
                "page_number": page_number,
            })
            if code in records:
                notes.append(
                    f"{code}: page {page_number} supersedes page {records[code].page_number}")
            records[code] = record
            warnings[code] = result.warnings

    if codes_seen == 0:
        raise DocumentRejected("No performance rows found in document")

    manifest = ReportManifest(
        report_date=report_date,
        performances=list(records.values()),
        skipped=[s for code, s in skips.items() if code not in records],
        warnings=[w for code in records for w in warnings[code]],
        notes=notes,
    )

    if expected_codes is not None:
        apply_expected_codes(manifest, expected_codes)
    return manifest
