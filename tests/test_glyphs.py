"""Tests for row grouping."""

import random

import pytest

from boxoffice.glyphs import group_rows, page_text
from boxoffice.models import PositionedGlyph


def glyph(x, y, text="x"):
    return PositionedGlyph(x=x, y=y, text=text)


class TestGroupRows:
    """Tests for group_rows."""

    def test_empty_page(self):
        assert group_rows([]) == []
        assert group_rows([], mode="anchor") == []

    def test_groups_within_tolerance_and_sorts_cells(self):
        glyphs = [
            glyph(50, 1.02, "b"),
            glyph(10, 1.00, "a"),
            glyph(10, 2.00, "c"),
            glyph(90, 1.01, "z"),
        ]
        rows = group_rows(glyphs)

        assert [row.texts() for row in rows] == [["a", "b", "z"], ["c"]]
        assert rows[0].y == 1.00

    def test_rows_sorted_by_y(self):
        rows = group_rows([glyph(0, 3.0, "third"), glyph(0, 1.0, "first"), glyph(0, 2.0, "second")])
        assert [row.text() for row in rows] == ["first", "second", "third"]

    def test_cluster_merges_chained_glyphs(self):
        """Consecutive gaps under tolerance stay on one row even when the span exceeds it."""
        glyphs = [glyph(0, 1.00, "a"), glyph(10, 1.04, "b"), glyph(20, 1.08, "c")]
        rows = group_rows(glyphs, y_tolerance=0.05, mode="cluster")
        assert [row.texts() for row in rows] == [["a", "b", "c"]]

    def test_anchor_uses_first_seen_y(self):
        glyphs = [glyph(0, 1.00, "a"), glyph(10, 1.04, "b"), glyph(20, 1.08, "c")]
        rows = group_rows(glyphs, y_tolerance=0.05, mode="anchor")
        assert [row.texts() for row in rows] == [["a", "b"], ["c"]]

    def test_anchor_depends_on_stream_order(self):
        glyphs = [glyph(10, 1.04, "b"), glyph(0, 1.00, "a"), glyph(20, 1.08, "c")]
        rows = group_rows(glyphs, y_tolerance=0.05, mode="anchor")
        assert [row.texts() for row in rows] == [["a", "b", "c"]]
        assert rows[0].y == 1.04

    def test_cluster_is_order_independent(self):
        rng = random.Random(7)
        glyphs = [glyph(x * 5.0, y + rng.random() * 0.02, f"{x}-{y}")
                  for y in range(10) for x in range(6)]
        expected = group_rows(glyphs)

        shuffled = list(glyphs)
        rng.shuffle(shuffled)
        assert group_rows(shuffled) == expected
        assert len(expected) == 10

    @pytest.mark.parametrize("mode", ["cluster", "anchor"])
    def test_idempotent(self, mode):
        glyphs = [glyph(3, 1.0), glyph(1, 1.01), glyph(2, 5.0), glyph(0, 5.03)]
        assert group_rows(glyphs, mode=mode) == group_rows(glyphs, mode=mode)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            group_rows([glyph(0, 0)], mode="columns")

    def test_page_text(self):
        rows = group_rows([glyph(0, 1, "Run"), glyph(5, 1, "by"), glyph(0, 2, "next")])
        assert page_text(rows) == "Run by\nnext"
