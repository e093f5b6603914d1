"""
Complimentary-ticket (PTC) report parser.

Each performance block carries a "Ticket Price" label followed by
Package# Package$ Single# Single$ Discount# Discount$ Comp# Other# Other$
Total$ Reserved# Reserved$. Values are taken as printed.
"""

from .assembler import extract_report_date
from .classifier import COMP_REPORT_LAYOUT, RowLayout, classify_rows
from .errors import DocumentRejected
from .glyphs import page_text
from .models import SEGMENTATION_FAILED, CompReport, CompTicketRecord, Row, RowSkip
from .segmenter import parse_count

PACKAGE_COUNT = 0
SINGLE_COUNT = 2
DISCOUNT_COUNT = 4
COMP_COUNT = 6
OTHER_COUNT = 7
TOTAL_REVENUE = 9

MIN_CELLS = COMP_COUNT + 1


def _amount(text: str) -> float | None:
    cleaned = text.replace('$', '').replace(',', '').strip()
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_comp_cells(code: str, cells: list[str]) -> CompTicketRecord:
    """Read the counts following "Ticket Price"."""
    cells = [c.strip() for c in cells if c.strip()]
    if len(cells) < MIN_CELLS:
        raise ValueError(f"Expected at least {MIN_CELLS} values, found {len(cells)}")

    def count(index):
        if index >= len(cells):
            return 0
        value = parse_count(cells[index])
        if value is None:
            raise ValueError(f"Value {cells[index]!r} at column {index + 1} is not a count")
        return value

    return CompTicketRecord(
        performance_code=code,
        package_tickets=count(PACKAGE_COUNT),
        single_tickets=count(SINGLE_COUNT),
        discount_tickets=count(DISCOUNT_COUNT),
        comp_tickets=count(COMP_COUNT),
        other_tickets=count(OTHER_COUNT),
        total_revenue=_amount(cells[TOTAL_REVENUE]) if len(cells) > TOTAL_REVENUE else None,
    )


def parse_comp_report(pages: list[list[Row]], layout: RowLayout = COMP_REPORT_LAYOUT) -> CompReport:
    """
    Parse grouped rows of a comp report.

    Raises:
        DocumentRejected: no run date, or no performance codes at all.
    """
    report_date = extract_report_date([page_text(rows) for rows in pages])
    if report_date is None:
        raise DocumentRejected("No 'Run by ... on M/D/YYYY' run date found")

    records = {}
    skipped = {}
    codes_seen = 0

    for page_number, rows in enumerate(pages, start=1):
        perf_rows, page_skips = classify_rows(rows, layout, page_number)
        codes_seen += len(perf_rows) + len(page_skips)

        for skip in page_skips:
            skipped.setdefault(skip.performance_code, skip)

        for perf_row in perf_rows:
            try:
                record = parse_comp_cells(perf_row.performance_code, perf_row.data_cells)
            except ValueError as e:
                skipped.setdefault(perf_row.performance_code, RowSkip(
                    performance_code=perf_row.performance_code,
                    reason=SEGMENTATION_FAILED,
                    detail=str(e),
                    page_number=page_number,
                ))
                continue
            records[perf_row.performance_code] = record.model_copy(
                update={"page_number": page_number})

    if codes_seen == 0:
        raise DocumentRejected("No performance rows found in document")

    return CompReport(
        report_date=report_date,
        records=list(records.values()),
        skipped=[s for code, s in skipped.items() if code not in records],
    )
