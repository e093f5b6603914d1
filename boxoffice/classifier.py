"""
Row classifier.

Finds performance-code cells in a page's rows and collects the data block
that belongs to each code. Cells are read in reading order (rows by y, cells
by x). A code whose preceding cell matches the layout's `skip_after`
pattern (e.g. "Series Total") is an aggregate line and is ignored.
"""

import re
from dataclasses import dataclass

from .models import NO_DATA_BLOCK, PerformanceRow, Row, RowSkip

# 2-digit season year + 4-digit date/sequence + 1-2 letter suffix, e.g. 251010E
PERFORMANCE_CODE_PATTERN = re.compile(r'^\d{6}[A-Z]{1,2}$')

# Special events, e.g. 26QUARTET1. Season years only, so times like 10PM never match
SPECIAL_EVENT_CODE_PATTERN = re.compile(r'^(?:25|26|27)[A-Z]+\d*$')

BUDGET_SENTINEL = re.compile(r'^\d+(?:\.\d+)?%')
TICKET_PRICE_SENTINEL = re.compile(r'^Ticket Price$')

AGGREGATE_LABEL = re.compile(r'Total')
# Package lines such as "FY 26 Package" are followed by event-like codes
AGGREGATE_OR_PACKAGE_LABEL = re.compile(r'Total|\b(?:25|26|27) ')


@dataclass(frozen=True)
class RowLayout:
    """Where a performance's data block starts relative to its code."""

    name: str
    code_patterns: tuple
    sentinel: re.Pattern
    include_sentinel: bool
    window: int = 20
    skip_after: re.Pattern = AGGREGATE_LABEL

    def is_code(self, text: str) -> bool:
        text = text.strip()
        return any(p.fullmatch(text) for p in self.code_patterns)

    def follows_aggregate(self, previous_text: str) -> bool:
        return bool(self.skip_after.search(previous_text))


# Sales summary: the data block starts with the budget percent and is part of the blob
SALES_SUMMARY_LAYOUT = RowLayout(
    name="sales_summary",
    code_patterns=(PERFORMANCE_CODE_PATTERN,),
    sentinel=BUDGET_SENTINEL,
    include_sentinel=True,
)

# Comp report: numbers follow a "Ticket Price" label
COMP_REPORT_LAYOUT = RowLayout(
    name="comp_report",
    code_patterns=(PERFORMANCE_CODE_PATTERN, SPECIAL_EVENT_CODE_PATTERN),
    sentinel=TICKET_PRICE_SENTINEL,
    include_sentinel=False,
    skip_after=AGGREGATE_OR_PACKAGE_LABEL,
)


def _flatten(rows: list[Row]) -> list[tuple[int, int, str]]:
    return [
        (row_index, cell_index, cell.text)
        for row_index, row in enumerate(rows)
        for cell_index, cell in enumerate(row.cells)
    ]


def _sentinel_span(flat: list, j: int, layout: RowLayout) -> int:
    """Number of cells forming the sentinel at j (labels may be split into words)."""
    row_index, _, text = flat[j]
    if layout.sentinel.match(text.strip()):
        return 1
    if j + 1 < len(flat) and flat[j + 1][0] == row_index:
        if layout.sentinel.match(f"{text.strip()} {flat[j + 1][2].strip()}"):
            return 2
    return 0


def _data_cells(rows: list[Row], row_index: int, start_cell: int, layout: RowLayout) -> list[str]:
    cells = rows[row_index].texts()[start_cell:]
    if cells:
        return cells

    # Sentinel ended its row; numbers continue on the next row
    if row_index + 1 < len(rows):
        next_cells = rows[row_index + 1].texts()
        if not any(layout.is_code(text) for text in next_cells):
            return next_cells
    return []


def classify_rows(rows: list[Row], layout: RowLayout = SALES_SUMMARY_LAYOUT,
                  page_number: int = 1) -> tuple[list[PerformanceRow], list[RowSkip]]:
    """
    Emit one PerformanceRow or RowSkip per performance code found on the page.

    Returns:
        tuple of (performance rows, skips)
    """
    flat = _flatten(rows)
    found = []
    skips = []

    for idx, (row_index, _, text) in enumerate(flat):
        if not layout.is_code(text):
            continue
        if idx > 0 and layout.follows_aggregate(flat[idx - 1][2]):
            continue

        code = text.strip()
        sentinel_idx = None
        span = 0
        for j in range(idx + 1, len(flat)):
            if flat[j][0] > row_index + layout.window:
                break
            if layout.is_code(flat[j][2]):
                break
            span = _sentinel_span(flat, j, layout)
            if span:
                sentinel_idx = j
                break

        if sentinel_idx is None:
            skips.append(RowSkip(
                performance_code=code,
                reason=NO_DATA_BLOCK,
                detail=f"No data block within {layout.window} rows",
                page_number=page_number,
            ))
            continue

        header = [flat[k][2] for k in range(idx + 1, sentinel_idx)]
        sentinel_row, sentinel_cell, _ = flat[sentinel_idx]
        start_cell = sentinel_cell if layout.include_sentinel else sentinel_cell + span
        data = _data_cells(rows, sentinel_row, start_cell, layout)

        if not data:
            skips.append(RowSkip(
                performance_code=code,
                reason=NO_DATA_BLOCK,
                detail="Data label found without values",
                page_number=page_number,
            ))
            continue

        found.append(PerformanceRow(
            performance_code=code,
            date_time_text=" ".join(t.strip() for t in header if t.strip()),
            data_cells=data,
            page_number=page_number,
            row_y=rows[row_index].y,
        ))

    return found, skips
