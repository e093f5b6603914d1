"""
PDF glyph extraction.

Uses pdfplumber word extraction: each word's x0/top become a positioned
glyph. Words that pdfplumber merges (numbers printed without spacing) arrive
as one fused fragment, which is what the field segmenter expects.
"""

import io

import pdfplumber

from .errors import DocumentRejected
from .models import PositionedGlyph


def read_pdf_pages(pdf_bytes: bytes) -> list[list[PositionedGlyph]]:
    """Extract positioned words from every page of a PDF."""
    if not pdf_bytes:
        raise DocumentRejected("Empty PDF payload")

    pages = []
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            for page in pdf.pages:
                words = page.extract_words()
                pages.append([
                    PositionedGlyph(x=float(w['x0']), y=float(w['top']), text=w['text'])
                    for w in words
                ])
    except DocumentRejected:
        raise
    except Exception as e:
        raise DocumentRejected(f"PDF could not be read: {type(e).__name__}: {str(e)}") from e

    return pages


def pages_from_json(payload: list) -> list[list[PositionedGlyph]]:
    """
    Accept already-decoded positioned-text pages.

    Expected shape: [[{"x": 1.2, "y": 3.4, "text": "..."}, ...], ...]
    """
    if not isinstance(payload, list):
        raise DocumentRejected("Decoded pages must be a list of pages")

    pages = []
    for page_number, page in enumerate(payload, start=1):
        if not isinstance(page, list):
            raise DocumentRejected(f"Page {page_number} is not a list of glyphs")
        try:
            pages.append([PositionedGlyph.model_validate(item) for item in page])
        except ValueError as e:
            raise DocumentRejected(f"Page {page_number} has malformed glyphs: {e}") from e
    return pages
