"""
Glyph stream normalizer.

Groups positioned text fragments of one page into rows that share a
y-coordinate within a tolerance band. Two bucketing modes:
- cluster (default): sort by y, then sweep forward and start a new row when
  the gap to the previous glyph reaches the tolerance. Independent of stream order.
- anchor: legacy behavior. Glyphs are taken in stream order and join the first
  existing bucket whose first-seen y is within tolerance. Kept for regression
  comparison against historically ingested data.
"""

from collections.abc import Iterable

from .models import Cell, PositionedGlyph, Row

# Page units of pre-decoded positioned-text pages
Y_TOLERANCE = 0.05

# pdfplumber reports coordinates in points
PDF_Y_TOLERANCE = 1.0

ROW_MODES = ("cluster", "anchor")


def _make_row(y: float, glyphs: list[PositionedGlyph]) -> Row:
    # sorted() is stable, so equal x keeps stream order
    ordered = sorted(glyphs, key=lambda g: g.x)
    return Row(y=y, cells=[Cell(x=g.x, text=g.text) for g in ordered])


def _anchor_rows(glyphs: list[PositionedGlyph], y_tolerance: float) -> list[Row]:
    buckets: dict[float, list[PositionedGlyph]] = {}
    for glyph in glyphs:
        target = None
        for anchor in buckets:
            if abs(anchor - glyph.y) < y_tolerance:
                target = anchor
                break
        if target is None:
            buckets[glyph.y] = [glyph]
        else:
            buckets[target].append(glyph)

    return [_make_row(y, buckets[y]) for y in sorted(buckets)]


def _cluster_rows(glyphs: list[PositionedGlyph], y_tolerance: float) -> list[Row]:
    ordered = sorted(glyphs, key=lambda g: (g.y, g.x, g.text))
    rows = []
    current: list[PositionedGlyph] = []
    previous_y = None

    for glyph in ordered:
        if previous_y is not None and glyph.y - previous_y >= y_tolerance:
            rows.append(_make_row(current[0].y, current))
            current = []
        current.append(glyph)
        previous_y = glyph.y

    if current:
        rows.append(_make_row(current[0].y, current))
    return rows


def group_rows(glyphs: Iterable[PositionedGlyph], y_tolerance: float = Y_TOLERANCE,
               mode: str = "cluster") -> list[Row]:
    """
    Group one page's glyphs into rows sorted by y, cells sorted by x.

    Never raises for well-formed glyphs; an empty page yields no rows.
    """
    if mode not in ROW_MODES:
        raise ValueError(f"Unknown row grouping mode: {mode}")

    glyphs = [g for g in glyphs if g.text]
    if not glyphs:
        return []

    if mode == "anchor":
        return _anchor_rows(glyphs, y_tolerance)
    return _cluster_rows(glyphs, y_tolerance)


def page_text(rows: list[Row]) -> str:
    """Page text in row order, one line per row."""
    return "\n".join(row.text() for row in rows)
